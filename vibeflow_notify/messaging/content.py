"""Content records that can be announced in Slack.

The records mirror the rows the content producer persists. Each variant
carries a literal ``content_type`` so that a raw payload can be parsed into
the right model with :func:`parse_record`.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union, get_args

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None


class WorkflowPublished(_Record):
    content_type: Literal["workflow"] = "workflow"
    title: str
    slug: str
    description: str | None = None
    image_url: str | None = None


class ServerPublished(_Record):
    content_type: Literal["mcp_server"] = "mcp_server"
    title: str
    slug: str
    description: str | None = None
    image_url: str | None = None
    tags: tuple[str, ...] | None = None
    npm_package: str | None = None
    github_url: str | None = None


class ArticlePublished(_Record):
    content_type: Literal["blog_post"] = "blog_post"
    title: str
    slug: str
    excerpt: str | None = None
    content: str = ""
    cover_image_url: str | None = None


class NewsItem(BaseModel):
    """One IDE news entry; accepts the stored column names as well."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str | None = None
    title: str = Field(validation_alias=AliasChoices("title", "titulo"))
    summary: str | None = Field(
        default=None, validation_alias=AliasChoices("summary", "resumo"),
    )
    link: str
    source: str = Field(validation_alias=AliasChoices("source", "fonte"))


class NewsBatch(_Record):
    content_type: Literal["ide_news"] = "ide_news"
    items: tuple[NewsItem, ...] = ()


class MemberJoined(_Record):
    content_type: Literal["member_joined"] = "member_joined"


ContentRecord = Annotated[
    Union[WorkflowPublished, ServerPublished, ArticlePublished, NewsBatch, MemberJoined],
    Field(discriminator="content_type"),
]

_record_adapter: TypeAdapter[Any] = TypeAdapter(ContentRecord)

CONTENT_TYPES: tuple[str, ...] = tuple(
    get_args(model.model_fields["content_type"].annotation)[0]
    for model in get_args(get_args(ContentRecord)[0])
)

# Content types announced to channels through incoming webhooks.
PUBLISH_CONTENT_TYPES: tuple[str, ...] = tuple(
    t for t in CONTENT_TYPES if t != "member_joined"
)


def parse_record(data: dict[str, Any]) -> ContentRecord:
    """Validate *data* into the record variant named by its ``content_type``.

    Raises :class:`pydantic.ValidationError` for an unknown type or
    missing fields.
    """
    return _record_adapter.validate_python(data)
