from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import records
from ..certificate import derive_title
from ..db import get_db
from ..schemas import LearningMaterial, Source
from .auth import User, get_current_user

router = APIRouter(prefix="/materials", tags=["materials"])


class MaterialRequest(BaseModel):
	text: str
	title: Optional[str] = None
	source: Optional[Source] = None


@router.post("", response_model=LearningMaterial, status_code=201)
async def save_material(req: MaterialRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	title = (req.title or "").strip() or derive_title(req.text or "")
	return records.save_learning_material(db, user_id=user.id, text=req.text, title=title, source=req.source)


@router.get("", response_model=List[LearningMaterial])
async def list_materials(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return records.get_learning_materials(db, user.id)
