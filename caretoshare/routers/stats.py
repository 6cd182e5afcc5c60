from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from caretoshare.core.deps import get_db
from caretoshare.services.files import site_stats

router = APIRouter(prefix="/stats", tags=["stats"])


# Site-wide totals for the landing page.
@router.get("")
def get_stats(db: Session = Depends(get_db)):
    return {"data": site_stats(db)}
