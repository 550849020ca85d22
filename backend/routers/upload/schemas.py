from pydantic import Field
from utils.response_helpers import CamelModel


class ImageUrlResponse(CamelModel):
    url: str


class SignUrlRequest(CamelModel):
    url: str = Field(..., min_length=1)
