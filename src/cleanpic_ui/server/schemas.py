from pydantic import BaseModel, Field


class RemoveRequest(BaseModel):
    image: str = Field(..., description="Source image as a base64 data URI")
    mask: str = Field(..., description="Mask (white = regenerate) as a base64 data URI")


class RemoveResponse(BaseModel):
    url: str


class ErrorResponse(BaseModel):
    error: str
    details: str = ""
    code: str = "upstream"
