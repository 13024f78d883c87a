from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ems.database import get_db
from ems.models.user import User
from ems.routers.auth_deps import get_current_user
from ems.schemas.search import RecentSearches, SearchResponse
from ems.services.search import GlobalSearch, RecentSearchStore

router = APIRouter(
    prefix="/search",
    tags=["search"]
)


@router.get("", response_model=SearchResponse)
def global_search(
    q: str = Query(default=""),
    save: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Search employees (admins only), own leave requests, notifications and
    documents. With ``save=true`` a non-empty query is added to the caller's
    recent searches.
    """
    results = GlobalSearch(db, current_user).search(q)
    store = RecentSearchStore(db, current_user.id)
    recent = store.add(q) if save else store.load()
    return SearchResponse(query=q, results=results, recent_searches=recent)


@router.get("/recent", response_model=RecentSearches)
def get_recent_searches(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return RecentSearches(searches=RecentSearchStore(db, current_user.id).load())


@router.post("/recent", response_model=RecentSearches)
def add_recent_search(q: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return RecentSearches(searches=RecentSearchStore(db, current_user.id).add(q))


@router.delete("/recent", response_model=RecentSearches)
def clear_recent_searches(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return RecentSearches(searches=RecentSearchStore(db, current_user.id).clear())
