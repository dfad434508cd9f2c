from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict
from datetime import datetime

from ..utils.dates import validate_date_string

# ============================================================================
# SETTINGS DTOs (classes, areas, canned messages, accounts)
# ============================================================================

class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, description="請輸入班級名稱")


class ClassUpdate(ClassCreate):
    pass


class ClassResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class AreaCreate(BaseModel):
    name: str = Field(..., min_length=1, description="請輸入掃區名稱")
    class_id: int = Field(..., ge=1, description="請選擇班級")


class AreaUpdate(AreaCreate):
    pass


class AreaResponse(BaseModel):
    id: int
    name: str
    rank: int
    class_id: int
    class_name: str


class DefaultCreate(BaseModel):
    shorthand: str = Field(..., min_length=1, description="請輸入簡寫")
    text: str = Field(..., min_length=1, description="請輸入完整訊息")


class DefaultUpdate(DefaultCreate):
    pass


class DefaultResponse(BaseModel):
    id: int
    shorthand: str
    text: str
    rank: int

    model_config = ConfigDict(from_attributes=True)


class RankUpdate(BaseModel):
    """One entry of a drag-and-drop reorder; written verbatim."""
    id: int
    rank: int


class AccountCreate(BaseModel):
    email: str = Field(..., pattern=r"^[\w\.\-+]+@[\w\.-]+\.\w+$", description="請輸入有效的電子郵件地址")


class AccountResponse(BaseModel):
    id: str
    email: str

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# EVALUATION DTOs
# ============================================================================

class DefaultWithRecency(DefaultResponse):
    reported_today: bool = False
    repeated_today: int = 0


class EvidenceUploadUrl(BaseModel):
    path: str
    url: str


class ImageUrlsRequest(BaseModel):
    paths: List[str]


class ReportCreate(BaseModel):
    """Deficiency submitted by an inspector"""
    date: str = Field(..., min_length=1, description="請輸入日期")
    text: str = Field(..., min_length=1, description="請輸入未清潔狀況")
    repeated: int = Field(..., ge=1, le=30, description="請輸入正確的連續未清潔天數")
    area_id: int = Field(..., ge=1, description="請選擇掃區")
    evidence: Optional[List[str]] = None
    comment: Optional[str] = None

    @field_validator("date")
    @classmethod
    def check_date_format(cls, v: str) -> str:
        return validate_date_string(v)


# ============================================================================
# RESPONSE DTOs (reports)
# ============================================================================

class ReportResponse(BaseModel):
    id: int
    date: str
    text: str
    repeated: int
    evidence: List[str] = []
    comment: Optional[str] = None
    area_id: int
    area_name: str
    created_at: datetime


class ClassReports(BaseModel):
    """All reports for one class on one date, as printed on a notification slip"""
    id: int
    name: str
    view_url: str
    reports: List[ReportResponse]


class ReportDownloadItem(ReportResponse):
    class_name: str
    evidence_urls: List[str] = []


class PublicRecord(BaseModel):
    id: int
    area_name: str
    repeated: int
    text: str
    comment: Optional[str] = None
    created_at: datetime
    evidence: List[str] = []  # presigned URLs, not storage paths


# ============================================================================
# ANALYTICS DTOs
# ============================================================================

class AnalyticsDefault(BaseModel):
    id: int
    text: str
    shorthand: str

    model_config = ConfigDict(from_attributes=True)


class AnalyticsBucket(BaseModel):
    """Report counts for one area or class, keyed by default id (0 = free text)"""
    key: str
    counts: Dict[int, int]


class MessageResponse(BaseModel):
    message: str
