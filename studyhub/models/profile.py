"""User profile and upload response models."""

from datetime import datetime

from pydantic import Field

from studyhub.models.base import ApiModel


class Profile(ApiModel):
    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    website: str | None = None
    github_username: str | None = None
    twitter_username: str | None = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(ApiModel):
    full_name: str | None = Field(default=None, max_length=200)
    avatar_url: str | None = None
    bio: str | None = Field(default=None, max_length=2000)
    website: str | None = None
    github_username: str | None = Field(default=None, max_length=100)
    twitter_username: str | None = Field(default=None, max_length=100)


class UploadedImage(ApiModel):
    path: str
    url: str


class UploadResponse(ApiModel):
    data: UploadedImage
