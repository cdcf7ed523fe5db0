from pydantic import BaseModel


class GuardLoginRequest(BaseModel):
    username: str
    password: str


class GuardTokenResponse(BaseModel):
    accessToken: str
    tokenType: str = "bearer"
