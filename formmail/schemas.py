from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Submission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
    loan_type: Optional[str] = Field(default=None, alias="loanType")
    source_page: Optional[str] = Field(default=None, alias="sourcePage")

    @field_validator("*", mode="before")
    @classmethod
    def _clean(cls, v):
        # forms send strings; JSON clients sometimes send numbers (phone)
        if v is None:
            return None
        if isinstance(v, bool):
            v = str(v).lower()
        elif isinstance(v, (int, float)):
            v = str(v)
        if not isinstance(v, str):
            raise ValueError("expected a string")
        v = v.strip()
        return v or None

    def value_of(self, field: str) -> Optional[str]:
        """Look up a field by its wire name (loanType, sourcePage) or python name."""
        for name, info in type(self).model_fields.items():
            if field in (name, info.alias):
                return getattr(self, name)
        raise KeyError(field)


class NotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str
    reply_to: Optional[str] = Field(default=None, alias="replyTo")
    subject: str
    html: str
    text: Optional[str] = None


class NotificationResult(BaseModel):
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None

    def to_response(self) -> dict:
        # success always carries "id" (null when the transport gave none)
        if self.success:
            return {"success": True, "id": self.id}
        return {"success": False, "error": self.error or "Server error"}
