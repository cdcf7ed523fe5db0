from pydantic import BaseModel, EmailStr, StrictInt, field_validator


class VisitorRequestCreate(BaseModel):
    visitorName: str
    visitorEmail: EmailStr
    residentName: str
    residentEmail: EmailStr
    visitReason: str
    carNumber: str | None = None

    @field_validator("visitorName", "residentName", "visitReason")
    @classmethod
    def _required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("visitorEmail", "residentEmail", mode="before")
    @classmethod
    def _strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("carNumber")
    @classmethod
    def _optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class VisitorStatusUpdate(BaseModel):
    status: str


class GuardVerifyRequest(BaseModel):
    visitorId: StrictInt | str
    code: str | int
