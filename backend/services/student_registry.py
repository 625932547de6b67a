"""Students owned by parents."""

from __future__ import annotations

import logging
import uuid
from typing import List

from db.repository import ShuttleRepository
from models import GRADES, Student
from services.errors import ValidationError

logger = logging.getLogger(__name__)


class StudentRegistry:
    def __init__(self, repository: ShuttleRepository) -> None:
        self.repository = repository

    def list_students(self, parent_id: str) -> List[Student]:
        return self.repository.list_students(parent_id)

    def add_student(self, parent_id: str, name: str, grade: str) -> Student:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Student name is required")
        if grade not in GRADES:
            raise ValidationError(f"Unknown grade '{grade}' (expected one of {', '.join(GRADES)})")

        student = self.repository.add_student(
            Student(id=str(uuid.uuid4()), name=name, grade=grade, parent_id=parent_id)
        )
        logger.info(f"Student {student.id} added for parent {parent_id}")
        return student
