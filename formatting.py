"""Rendering of repository status messages in Telegram MarkdownV2."""
import re
from typing import List, Optional

from models import CommitSummary, ReleaseInfo, RepositoryDescriptor

# Characters MarkdownV2 reserves outside of deliberate markup
_RESERVED = re.compile(r"([\\_*\[\]()~`>#+\-=|{}.!])")
_LINK_RESERVED = re.compile(r"([\\)])")

SIZE_UNITS = ["B", "KB", "MB", "GB"]
SEPARATOR = "➖" * 8
NO_COMMITS = "No commit history"
NO_DESCRIPTION = "no description"

_SUPERSCRIPT = str.maketrans({
    "0": "⁰", "1": "¹", "2": "²", "3": "³", "4": "⁴",
    "5": "⁵", "6": "⁶", "7": "⁷", "8": "⁸", "9": "⁹",
    "a": "ᵃ", "b": "ᵇ", "c": "ᶜ", "d": "ᵈ", "e": "ᵉ", "f": "ᶠ", "g": "ᵍ",
    "h": "ʰ", "i": "ⁱ", "j": "ʲ", "k": "ᵏ", "l": "ˡ", "m": "ᵐ", "n": "ⁿ",
    "o": "ᵒ", "p": "ᵖ", "r": "ʳ", "s": "ˢ", "t": "ᵗ", "u": "ᵘ", "v": "ᵛ",
    "w": "ʷ", "x": "ˣ", "y": "ʸ", "z": "ᶻ",
    "+": "⁺", "-": "⁻", "=": "⁼", "(": "⁽", ")": "⁾", ".": "·",
})


def escape_markdown(text: str) -> str:
    """Prefix every MarkdownV2 reserved character with a single backslash."""
    return _RESERVED.sub(r"\\\1", text)


def escape_link_url(url: str) -> str:
    """Escape a URL for use inside ``(...)`` of an inline link."""
    return _LINK_RESERVED.sub(r"\\\1", url)


def format_size(size: Optional[int]) -> str:
    """
    Human readable size with binary prefixes.

    B and KB use no decimals, MB and GB one decimal with a trailing ``.0``
    dropped, so 2097152 renders as ``2MB`` and 1572864 as ``1.5MB``.
    """
    if not size or size <= 0:
        return ""

    index = 0
    value = float(size)
    while value >= 1024 and index < len(SIZE_UNITS) - 1:
        value /= 1024
        index += 1

    if index > 1:
        text = f"{value:.1f}"
        if text.endswith(".0"):
            text = text[:-2]
    else:
        text = f"{value:.0f}"
    return f"{text}{SIZE_UNITS[index]}"


def superscript(text: str) -> str:
    """Transliterate into superscript glyphs where one exists."""
    return text.lower().translate(_SUPERSCRIPT)


def _release_lines(release: ReleaseInfo) -> List[str]:
    """Asset links, the tag/date stamp and the separator."""
    lines = []
    for asset in release.assets:
        line = f"📦 [{escape_markdown(asset.name)}]({escape_link_url(asset.url)})"
        size = format_size(asset.size)
        if size:
            line += f" {escape_markdown(size)}"
        lines.append(line)

    stamp = superscript(release.tag)
    if release.published_at:
        stamp += f" · {superscript(release.published_at[:10])}"
    lines.append(f"_{escape_markdown(stamp)}_")
    lines.append(SEPARATOR)
    return lines


def render_repo_message(
    repo: RepositoryDescriptor,
    release: Optional[ReleaseInfo],
    recent_commits: List[CommitSummary],
) -> str:
    """
    Format a repository's status as a Telegram MarkdownV2 message.

    Args:
        repo: Repository metadata
        release: Latest release, if any
        recent_commits: Newest-first commit summaries

    Returns:
        Message text with every user supplied fragment escaped
    """
    lines = []

    if release and release.assets:
        lines.extend(_release_lines(release))

    repo_url = f"https://github.com/{repo.full_name}"
    header = f"__*\\# [{escape_markdown(repo.full_name)}]({escape_link_url(repo_url)})*__"
    if repo.stars > 0:
        header += f" ⭐ {repo.stars}"
    lines.append(header)

    if repo.description and repo.description.strip():
        lines.append(escape_markdown(repo.description.strip()))

    if not recent_commits:
        lines.append(f">{escape_markdown(NO_COMMITS)}")
    else:
        bullets = []
        for commit in recent_commits:
            message = commit.message.split("\n")[0].strip() or NO_DESCRIPTION
            bullets.append(f">• _{escape_markdown(message)}_")
        lines.append("\n".join(bullets) + "||")

    return "\n".join(lines)
