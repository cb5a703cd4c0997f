from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class Problem(BaseModel):
    """Problem details body returned for every 4xx/5xx response."""
    type: str
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
    errors: Optional[Dict[str, List[str]]] = None
    request_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
