from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..common.datetime_utils import parse_date_or_none
from ..core.enums import Gender, StudentStatus


@dataclass(frozen=True)
class Student:
    """Domain entity: an enrolled student.

    Date fields are kept as the raw strings they were stored with; readers
    parse them leniently so malformed legacy data never breaks a screen.
    """

    id: str
    name: str
    grade: str = ""
    joined_date: Optional[str] = None
    status: StudentStatus = StudentStatus.ACTIVE
    admission_number: str = ""
    parent_name: str = ""
    mobile_number: str = ""
    whatsapp_number: str = ""
    gender: Gender = Gender.MALE
    notes: str = ""
    photo: Optional[str] = None
    last_reminder_sent_at: Optional[str] = None
    reminder_count: int = 0
    last_inquiry_sent_date: Optional[str] = None

    @property
    def joined_on(self) -> Optional[date]:
        return parse_date_or_none(self.joined_date)

    @property
    def is_suspended(self) -> bool:
        return self.status == StudentStatus.TEMPORARY_SUSPENDED

    @property
    def contact_number(self) -> str:
        return self.whatsapp_number or self.mobile_number
