"""Block Kit formatters for every content record.

Each ``format_*`` function is pure: the same record always yields an equal
:class:`~.blocks.Message`, and absent optional fields are left out rather
than rendered as empty text.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .blocks import (
    ActionsBlock,
    Block,
    ContextBlock,
    HeaderBlock,
    ImageElement,
    LinkButton,
    Message,
    SectionBlock,
    mrkdwn,
)
from .content import (
    CONTENT_TYPES,
    ArticlePublished,
    ContentRecord,
    MemberJoined,
    NewsBatch,
    ServerPublished,
    WorkflowPublished,
)

SITE_URL = "https://vibeflow.site"

MAX_TAGS = 5
MAX_NEWS_ITEMS = 10
EXCERPT_LENGTH = 200

WELCOME_FALLBACK = (
    "Bem-vindo ao Vibe Flow! Confira os canais #regras, #geral e #ajuda para começar."
)
_WELCOME_INTRO = (
    "Olá! É ótimo ter você aqui. Este é o espaço da comunidade Vibe Flow, "
    "onde compartilhamos conhecimento sobre automação, IA e ferramentas de "
    "produtividade."
)
_WELCOME_GUIDE = (
    "*Canais importantes para você começar:*\n\n"
    "• <#regras|#regras> - Conheça as regras da comunidade\n"
    "• <#geral|#geral> - Conversas gerais e networking\n"
    "• <#ajuda|#ajuda> - Precisa de ajuda? Pergunte aqui!\n\n"
    "Sinta-se à vontade para explorar os outros canais e participar das "
    "discussões. Estamos aqui para ajudar! 🚀"
)
_NEWS_FOOTER = f"Sincronizado automaticamente • <{SITE_URL}/ide-news|Ver todas>"


def _title_section(title: str, body: str | None, image_url: str | None = None) -> SectionBlock:
    text = f"*{title}*"
    if body:
        text += f"\n{body}"
    accessory = ImageElement(image_url=image_url, alt_text=title) if image_url else None
    return SectionBlock(text=mrkdwn(text), accessory=accessory)


def format_workflow_message(workflow: WorkflowPublished) -> Message:
    blocks: tuple[Block, ...] = (
        HeaderBlock("🚀 Novo Workflow Publicado!"),
        _title_section(workflow.title, workflow.description, workflow.image_url),
        ActionsBlock((
            LinkButton("Ver Workflow", f"{SITE_URL}/workflows/{workflow.slug}", primary=True),
        )),
    )
    return Message(blocks=blocks, text=f"Novo Workflow Publicado: {workflow.title}")


def format_mcp_server_message(server: ServerPublished) -> Message:
    """Header, details section, optional tag context, then the buttons."""
    body = server.description or ""
    if server.npm_package:
        body += ("\n\n" if body else "") + f"📦 `{server.npm_package}`"

    blocks: list[Block] = [
        HeaderBlock("🔌 Novo MCP Server Disponível!"),
        _title_section(server.title, body, server.image_url),
    ]

    tags = (server.tags or ())[:MAX_TAGS]
    if tags:
        blocks.append(ContextBlock((mrkdwn(" ".join(f"`{t}`" for t in tags)),)))

    buttons = [
        LinkButton("Ver Detalhes", f"{SITE_URL}/mcp-servers/{server.slug}", primary=True),
    ]
    if server.github_url:
        buttons.append(LinkButton("GitHub", server.github_url))
    blocks.append(ActionsBlock(tuple(buttons)))

    return Message(blocks=tuple(blocks), text=f"Novo MCP Server Disponível: {server.title}")


def article_excerpt(post: ArticlePublished) -> str:
    """The explicit excerpt, or the opening of the article body."""
    if post.excerpt is not None:
        return post.excerpt
    excerpt = post.content[:EXCERPT_LENGTH]
    if len(post.content) > EXCERPT_LENGTH:
        excerpt += "..."
    return excerpt


def format_blog_post_message(post: ArticlePublished) -> Message:
    blocks: tuple[Block, ...] = (
        HeaderBlock("📝 Novo Artigo Publicado!"),
        _title_section(post.title, article_excerpt(post), post.cover_image_url),
        ActionsBlock((
            LinkButton("Ler Mais", f"{SITE_URL}/blog/{post.slug}", primary=True),
        )),
    )
    return Message(blocks=blocks, text=f"Novo Artigo Publicado: {post.title}")


def format_ide_news_message(batch: NewsBatch) -> Message:
    """One section per news item, capped at the first ten."""
    items = batch.items[:MAX_NEWS_ITEMS]
    count = len(items)

    blocks: list[Block] = [HeaderBlock(f"🤖 {count} Novidades de IDEs com IA")]
    for item in items:
        text = f"*{item.title}*\n"
        if item.summary:
            text += f"{item.summary}\n"
        text += f"<{item.link}|Ler mais> • {item.source}"
        blocks.append(SectionBlock(text=mrkdwn(text)))
    blocks.append(ContextBlock((mrkdwn(_NEWS_FOOTER),)))

    return Message(blocks=tuple(blocks), text=f"{count} Novidades de IDEs com IA")


def format_welcome_message(_member: MemberJoined | None = None) -> Message:
    blocks: tuple[Block, ...] = (
        HeaderBlock("👋 Bem-vindo ao Vibe Flow!"),
        SectionBlock(text=mrkdwn(_WELCOME_INTRO)),
        SectionBlock(text=mrkdwn(_WELCOME_GUIDE)),
    )
    return Message(blocks=blocks, text=WELCOME_FALLBACK)


_FORMATTERS: dict[str, Callable[[Any], Message]] = {
    "workflow": format_workflow_message,
    "mcp_server": format_mcp_server_message,
    "blog_post": format_blog_post_message,
    "ide_news": format_ide_news_message,
    "member_joined": format_welcome_message,
}

_missing = set(CONTENT_TYPES) - set(_FORMATTERS)
if _missing:
    raise RuntimeError(f"No formatter registered for: {', '.join(sorted(_missing))}")


def format_message(record: ContentRecord) -> Message:
    """Format any content record with the formatter for its type."""
    return _FORMATTERS[record.content_type](record)
