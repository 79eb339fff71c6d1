"""Schemas for link-locator creatives (text, banner, rich media)."""

from enum import Enum

from pydantic import BaseModel, Field


class LinkType(str, Enum):
    TEXT = "text"
    BANNER = "banner"
    RICH_MEDIA = "rich-media"


class LinkItem(BaseModel):
    """A creative asset. Banner-only fields stay None for other link types."""

    campaign_id: int | None = Field(alias="campaignID", default=None)
    category_id: int | None = Field(alias="categoryID", default=None)
    category_name: str | None = Field(alias="categoryName", default=None)
    link_id: int | None = Field(alias="linkID", default=None)
    link_name: str | None = Field(alias="linkName", default=None)
    mid: int | None = None
    nid: int | None = None
    code: str | None = None
    click_url: str | None = Field(alias="clickURL", default=None)
    text_display: str | None = Field(alias="textDisplay", default=None)
    start_date: str | None = Field(alias="startDate", default=None)
    end_date: str | None = Field(alias="endDate", default=None)
    height: int | None = None
    width: int | None = None
    server_type: int | None = Field(alias="serverType", default=None)
    show_url: str | None = Field(alias="showURL", default=None)
    img_url: str | None = Field(alias="imgURL", default=None)
    size: str | None = None

    model_config = {"populate_by_name": True}


class LinkSearchResult(BaseModel):
    links: list[LinkItem] = Field(default_factory=list)
    request_url: str | None = Field(alias="requestUrl", default=None)

    model_config = {"populate_by_name": True}
