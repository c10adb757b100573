from pydantic import BaseModel


class PageMeta(BaseModel):
    current_page: int
    limit: int
    total_records: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool
