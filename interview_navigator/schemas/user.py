from typing import Optional

from pydantic import BaseModel, EmailStr


class UserContext(BaseModel):
    user_id: str
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
