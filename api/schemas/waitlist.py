from pydantic import BaseModel, ConfigDict, Field


class WaitlistSubmission(BaseModel):
    """Body sent by the signup form"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    recaptcha_token: str = Field(alias="recaptchaToken")


class MessageResponse(BaseModel):
    message: str


class WaitlistResponse(MessageResponse):
    name: str
    email: str
    id: int


class RateLimitedResponse(MessageResponse):
    limit: int
    remaining: int
    reset: int  # epoch milliseconds
