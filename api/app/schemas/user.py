"""User schemas."""
from pydantic import BaseModel, ConfigDict, EmailStr


class UserBrief(BaseModel):
    """Brief user info embedded in risk and audit responses."""
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    email: EmailStr
    full_name: str
    role: str
