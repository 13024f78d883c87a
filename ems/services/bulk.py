"""
Bulk actions over a selection of rows.

A selection is only cleared, and its dialog closed, after the callback
succeeds. On failure the user keeps the selection and can retry or dismiss.
"""
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from ems.core.schemas import Notice
from ems.schemas.employee import BulkSelectionState

logger = logging.getLogger(__name__)


class BulkSelection:
    def __init__(self, entity_name: str, ids: List[Any]):
        self.entity_name = entity_name
        self.selected_ids = list(ids)
        self.dialog_open = False
        self.is_processing = False
        self.update_data = ""
        self.affected = 0
        self.notice: Optional[Notice] = None

    @property
    def can_dismiss(self) -> bool:
        return not self.is_processing

    def open_dialog(self):
        self.dialog_open = True

    def dismiss(self) -> bool:
        if not self.can_dismiss:
            return False
        self.dialog_open = False
        return True

    def clear(self):
        self.selected_ids = []

    def delete(self, callback: Callable[[List[Any]], Any]) -> Notice:
        count = len(self.selected_ids)
        self.is_processing = True
        try:
            result = callback(list(self.selected_ids))
            self.affected = result if isinstance(result, int) else count
            self.notice = Notice(title="Success", description=f"{count} {self.entity_name}(s) deleted successfully")
            self.dialog_open = False
            self.clear()
        except Exception as e:
            logger.error(f"Bulk delete of {count} {self.entity_name}(s) failed: {e}", exc_info=True)
            self.notice = Notice.error("Error", f"Failed to delete {self.entity_name}s")
        finally:
            self.is_processing = False
        return self.notice

    def update(self, callback: Callable[[List[Any], Dict[str, Any]], Any], raw_updates: str) -> Notice:
        count = len(self.selected_ids)
        self.update_data = raw_updates
        try:
            updates = json.loads(raw_updates)
            if not isinstance(updates, dict):
                raise ValueError("Updates must be a JSON object")
            self.is_processing = True
            result = callback(list(self.selected_ids), updates)
            self.affected = result if isinstance(result, int) else count
            self.notice = Notice(title="Success", description=f"{count} {self.entity_name}(s) updated successfully")
            self.dialog_open = False
            self.update_data = ""
            self.clear()
        except json.JSONDecodeError:
            self.notice = Notice.error("Error", "Invalid JSON format")
        except Exception as e:
            logger.error(f"Bulk update of {count} {self.entity_name}(s) failed: {e}", exc_info=True)
            self.notice = Notice.error("Error", str(e) or "Invalid JSON format")
        finally:
            self.is_processing = False
        return self.notice

    def state(self) -> BulkSelectionState:
        return BulkSelectionState(
            selected_ids=self.selected_ids,
            dialog_open=self.dialog_open,
            is_processing=self.is_processing,
            affected=self.affected,
        )
