# gym_portal/schemas/auth.py
from pydantic import BaseModel, Field, field_validator, model_validator


class LoginRequest(BaseModel):
    email: str = Field(
        ...,
        description="Admin email address",
        json_schema_extra={"example": "admin@example.com"},
    )
    password: str = Field(
        ...,
        json_schema_extra={"example": "securePassword1!"},
    )

    @field_validator("email", mode="before")
    def normalize_email(cls, email: str) -> str:
        return (email or "").strip().lower()


# Reset password
class PasswordReset(BaseModel):
    password: str = ""
    confirm_password: str = ""

    @model_validator(mode="after")
    def check_passwords(self):
        if not self.password or not self.confirm_password:
            raise ValueError("Please fill in all fields")
        if len(self.password) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class Token(BaseModel):
    token: str
    token_type: str = "bearer"
