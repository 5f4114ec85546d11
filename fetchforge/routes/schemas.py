"""Request models"""
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field


class SubmitRequest(BaseModel):
    """Free text containing one or more http(s) locators."""
    text: str


class ImportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payload: Union[str, List[Dict[str, Any]]]
    mode: str = "merge"
    overwrite_downloaded: bool = Field(default=False, alias="overwriteDownloaded")


class ProfileSelection(BaseModel):
    id: str


class OpenPathRequest(BaseModel):
    path: str
