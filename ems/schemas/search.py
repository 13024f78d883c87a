from pydantic import BaseModel
from typing import List, Literal, Optional


class SearchResult(BaseModel):
    id: int
    title: str
    subtitle: str
    type: Literal["employee", "leave", "notification", "document"]
    url: str
    date: Optional[str] = None


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    recent_searches: List[str] = []


class RecentSearches(BaseModel):
    searches: List[str]
