"""Pydantic response and request models for the REST API."""

import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class LectureOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    subject: str
    file_name: str
    file_type: str
    file_size: int
    download_count: int
    uploaded_by: str
    created_at: datetime.datetime


class LectureList(BaseModel):
    items: List[LectureOut]
    total: int
    skip: int
    limit: int


class DownloadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    lecture_id: str
    downloaded_at: datetime.datetime


class StatsOut(BaseModel):
    total_lectures: int
    active_students: int
    total_downloads: int
    storage_used: int


class BroadcastRequest(BaseModel):
    message: str
