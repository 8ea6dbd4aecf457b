"""
Рендеринг ответов модели в разметку Telegram.

Два диалекта:
- Dialect.HTML: теги <b>, <i>, <u>, <s>, <code>, <pre>; &, <, > экранируются сущностями
- Dialect.MARKDOWN_V2: спецсимволы _*[]()~`>#+-=|{}.! экранируются обратным слэшем

Конвейер render():
1. Удаляем рассуждения модели <think>...</think>
2. Делим текст на блоки кода ``` и обычный текст
3. Код не экранируется по правилам Markdown и оборачивается в блок диалекта
4. Текст экранируется ровно один раз: повторный render() ничего не меняет
5. **жирный** → <b>жирный</b> (HTML) или *жирный* с пробелами по краям (MarkdownV2)

Незакрытый ``` или <think> — остаток текста экранируется как обычный текст.
render() никогда не бросает исключений.

split_rendered() режет уже отрендеренный текст на сообщения,
не разрывая escape-последовательности, сущности и теги.
"""

import html
import re
from enum import Enum
from typing import Iterator, Optional

from config import get_logger

logger = get_logger(__name__)


class Dialect(str, Enum):
    """Диалект разметки Telegram"""
    HTML = "html"
    MARKDOWN_V2 = "markdown_v2"

    @property
    def parse_mode(self) -> str:
        """Значение parse_mode для Bot API"""
        return "HTML" if self is Dialect.HTML else "MarkdownV2"


# =============================================================================
# РАССУЖДЕНИЯ МОДЕЛИ
# =============================================================================

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"
_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)


def _split_reasoning(text: str) -> tuple[str, str]:
    """Удаляет пары <think>...</think>.

    Returns:
        (видимый текст, остаток с незакрытого <think> или "")
    """
    text = _THINK_RE.sub("", text)
    idx = text.find(THINK_OPEN)
    if idx == -1:
        return text, ""
    return text[:idx], text[idx:]


def strip_reasoning(text: str) -> str:
    """Текст без рассуждений модели (для истории диалога)"""
    visible, remainder = _split_reasoning(text or "")
    return (visible + remainder).strip()


# =============================================================================
# ЭКРАНИРОВАНИЕ
# =============================================================================

_HTML_ENTITY = r"&(?:lt|gt|amp|quot|#\d+|#x[0-9a-fA-F]+);"
_HTML_BARE_AMP_RE = re.compile(r"&(?!(?:lt|gt|amp|quot|#\d+|#x[0-9a-fA-F]+);)")

MD_SPECIAL = frozenset("_*[]()~`>#+-=|{}.!")
_MD_ESCAPABLE = MD_SPECIAL | {"\\"}


def escape_html(text: str) -> str:
    """Экранирует &, <, > кроме уже готовых сущностей (идемпотентно)"""
    text = _HTML_BARE_AMP_RE.sub("&amp;", text)
    return text.replace("<", "&lt;").replace(">", "&gt;")


def escape_markdown(text: str) -> str:
    """Экранирует спецсимволы MarkdownV2 (идемпотентно).

    Пара "\\x", где x — спецсимвол или слэш, считается уже экранированной.
    """
    out = []
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            if i + 1 < n and text[i + 1] in _MD_ESCAPABLE:
                out.append(text[i:i + 2])
                i += 2
                continue
            out.append("\\\\")
        elif ch in MD_SPECIAL:
            out.append("\\" + ch)
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _plain_html(text: str) -> str:
    # * и ` заменяются числовыми сущностями, чтобы повторный проход не нашёл разметку
    text = html.escape(text, quote=False)
    return text.replace("*", "&#42;").replace("`", "&#96;")


def _plain(text: str, dialect: Dialect) -> str:
    if dialect is Dialect.HTML:
        return _plain_html(text)
    return escape_markdown(text)


# =============================================================================
# БЛОКИ КОДА
# =============================================================================

_FENCE = "```"
_FENCE_OPEN_RE = re.compile(r"(?<!\\)```(?:([\w+#.-]+)[ \t]*\n|\n?)")

TEXT, CODE, PLAIN = "text", "code", "plain"


def _segments(text: str) -> Iterator[tuple[str, str, Optional[str]]]:
    """Делит текст на (вид, содержимое, язык).

    Незакрытый ``` превращает остаток в PLAIN.
    """
    pos = 0
    while True:
        m = _FENCE_OPEN_RE.search(text, pos)
        if not m:
            yield TEXT, text[pos:], None
            return

        close = text.find(_FENCE, m.end())
        if close == -1:
            yield TEXT, text[pos:m.start()], None
            yield PLAIN, text[m.start():], None
            return

        yield TEXT, text[pos:m.start()], None
        yield CODE, text[m.end():close], m.group(1)
        pos = close + len(_FENCE)


def _code_block(code: str, lang: Optional[str], dialect: Dialect) -> str:
    if dialect is Dialect.HTML:
        body = html.escape(code, quote=False)
        if lang:
            return f'<pre><code class="language-{lang}">{body}</code></pre>'
        return f"<pre>{body}</pre>"
    return f"{_FENCE}{lang or ''}\n{code}{_FENCE}"


# =============================================================================
# HTML
# =============================================================================

_HTML_TAGS = ("b", "i", "u", "s", "code", "pre")
_HTML_TAG_RE = re.compile(
    r'<(/?)(b|i|u|s|code|pre)(\s+class="language-[\w+#.-]+")?>'
)
_HTML_INLINE_CODE_RE = re.compile(r"(?<!\\)`([^`\n]+)`")
_HTML_BOLD_RE = re.compile(r"\*\*(?=[^\s*])(.+?)(?<=[^\s*])\*\*")


def _match_html_tags(text: str) -> list[re.Match]:
    """Возвращает только сбалансированные и допустимые теги.

    Внутри <code> теги не открываются; внутри <pre> — только <code>.
    Атрибут class допустим только у открывающего <code>.
    """
    tags = list(_HTML_TAG_RE.finditer(text))
    stack: list[int] = []
    matched: set[int] = set()

    for idx, tag in enumerate(tags):
        closing, name, attr = tag.group(1), tag.group(2), tag.group(3)
        if closing:
            if attr is None and stack and tags[stack[-1]].group(2) == name:
                matched.add(stack.pop())
                matched.add(idx)
            continue

        top = tags[stack[-1]].group(2) if stack else None
        if top == "code" or (top == "pre" and name != "code"):
            continue
        if attr and name != "code":
            continue
        stack.append(idx)

    return [tag for idx, tag in enumerate(tags) if idx in matched]


def _html_run(text: str) -> str:
    """Текст между тегами: `код`, **жирный**, экранирование"""
    codes: list[str] = []

    def _stash(m: re.Match) -> str:
        codes.append(f"<code>{html.escape(m.group(1), quote=False)}</code>")
        return f"\x00{len(codes) - 1}\x00"

    text = _HTML_INLINE_CODE_RE.sub(_stash, text)
    text = escape_html(text)
    text = _HTML_BOLD_RE.sub(r"<b>\1</b>", text)

    for i, code in enumerate(codes):
        text = text.replace(f"\x00{i}\x00", code)
    return text


def _render_html_text(text: str) -> str:
    out = []
    pos = 0
    code_depth = 0

    for tag in _match_html_tags(text):
        run = text[pos:tag.start()]
        out.append(escape_html(run) if code_depth else _html_run(run))
        out.append(tag.group(0))
        if tag.group(2) in ("code", "pre"):
            code_depth += -1 if tag.group(1) else 1
        pos = tag.end()

    run = text[pos:]
    out.append(escape_html(run) if code_depth else _html_run(run))
    return "".join(out)


# =============================================================================
# MARKDOWN V2
# =============================================================================

# **текст** из ответа модели
_MD_DOUBLE_RE = re.compile(r"\*\*(?=[^\s*])((?:\\.|[^\\\n])+?)(?<=[^\s\\])\*\*")
# *текст*: уже готовое выделение (повторный проход)
_MD_SINGLE_RE = re.compile(r"\*(?=[^\s*])((?:\\.|[^\\*\n])+?)(?<=[^\s\\])\*")


def _render_markdown_text(text: str, followed: bool = False) -> str:
    """followed: за текстом сразу идёт обычный текст (незакрытый ``` или <think>)"""
    out = []
    i, n = 0, len(text)

    while i < n:
        ch = text[i]

        if ch == "\\" and i + 1 < n and text[i + 1] in _MD_ESCAPABLE:
            out.append(text[i:i + 2])
            i += 2
            continue

        if ch == "`":
            close = text.find("`", i + 1)
            if close > i + 1 and "\n" not in text[i + 1:close]:
                out.append(text[i:close + 1])
                i = close + 1
                continue
            out.append("\\`")
            i += 1
            continue

        if ch == "*":
            m = _MD_DOUBLE_RE.match(text, i)
            if m:
                before = i > 0 and not text[i - 1].isspace()
                if m.end() < n:
                    after = not text[m.end()].isspace()
                else:
                    after = followed
                out.append(
                    (" " if before else "")
                    + "*" + escape_markdown(m.group(1)) + "*"
                    + (" " if after else "")
                )
                i = m.end()
                continue

            m = _MD_SINGLE_RE.match(text, i)
            if (
                m
                and (i == 0 or text[i - 1].isspace())
                and ((m.end() == n and not followed) or (m.end() < n and text[m.end()].isspace()))
            ):
                out.append("*" + escape_markdown(m.group(1)) + "*")
                i = m.end()
                continue

        if ch == "\\":
            out.append("\\\\")
        elif ch in MD_SPECIAL:
            out.append("\\" + ch)
        else:
            out.append(ch)
        i += 1

    return "".join(out)


# =============================================================================
# RENDER
# =============================================================================

def _render_text(text: str, dialect: Dialect, followed: bool = False) -> str:
    if dialect is Dialect.HTML:
        return _render_html_text(text)
    return _render_markdown_text(text, followed)


def render(raw: str, dialect: Dialect = Dialect.HTML) -> str:
    """
    Превращает ответ модели в безопасную разметку диалекта.

    Args:
        raw: Текст от модели
        dialect: Целевой диалект

    Returns:
        Текст, который Telegram примет с parse_mode=dialect.parse_mode
    """
    dialect = Dialect(dialect)
    raw = (raw or "").replace("\x00", "")

    try:
        visible, remainder = _split_reasoning(raw)
        if remainder:
            visible, remainder = visible.lstrip(), remainder.rstrip()
        else:
            visible = visible.strip()

        out = []
        segments = list(_segments(visible))
        for idx, (kind, body, lang) in enumerate(segments):
            if kind == CODE:
                out.append(_code_block(body, lang, dialect))
            elif kind == PLAIN:
                out.append(_plain(body, dialect))
            elif body:
                following = segments[idx + 1][0] if idx + 1 < len(segments) else None
                followed = following == PLAIN or (following is None and bool(remainder))
                out.append(_render_text(body, dialect, followed))

        if remainder:
            out.append(_plain(remainder, dialect))
        return "".join(out)

    except Exception as e:
        logger.error(f"Render error ({dialect.value}), falling back to plain text: {e}")
        return _plain(strip_reasoning(raw), dialect)


# =============================================================================
# РАЗБИЕНИЕ НА СООБЩЕНИЯ
# =============================================================================

OPEN, CLOSE, ATOM = "open", "close", "atom"

_FENCE_HEAD_RE = re.compile(r"```(?:[\w+#.-]+[ \t]*\n|\n?)")

_HTML_ATOM_RE = re.compile(
    r"<(/?)([a-z]+)[^<>]*>|" + _HTML_ENTITY + r"|.",
    re.DOTALL,
)


def _html_atoms(text: str) -> Iterator[tuple[str, str, str]]:
    for m in _HTML_ATOM_RE.finditer(text):
        if m.group(2):
            if m.group(1):
                yield m.group(0), CLOSE, ""
            else:
                yield m.group(0), OPEN, f"</{m.group(2)}>"
        else:
            yield m.group(0), ATOM, ""


def _markdown_atoms(text: str) -> Iterator[tuple[str, str, str]]:
    i, n = 0, len(text)
    in_block = in_inline = bold = False

    while i < n:
        if in_block:
            if text.startswith(_FENCE, i):
                in_block = False
                yield _FENCE, CLOSE, ""
                i += len(_FENCE)
            else:
                yield text[i], ATOM, ""
                i += 1
            continue

        ch = text[i]
        if in_inline:
            if ch == "`":
                in_inline = False
                yield ch, CLOSE, ""
            else:
                yield ch, ATOM, ""
            i += 1
            continue

        if ch == "\\" and i + 1 < n:
            yield text[i:i + 2], ATOM, ""
            i += 2
        elif text.startswith(_FENCE, i):
            m = _FENCE_HEAD_RE.match(text, i)
            in_block = True
            yield m.group(0), OPEN, _FENCE
            i = m.end()
        elif ch == "`":
            in_inline = True
            yield ch, OPEN, "`"
            i += 1
        elif ch == "*":
            bold = not bold
            yield ch, OPEN if bold else CLOSE, "*"
            i += 1
        else:
            yield ch, ATOM, ""
            i += 1


def split_rendered(text: str, dialect: Dialect = Dialect.HTML, limit: int = 4096) -> list[str]:
    """
    Режет отрендеренный текст на части не длиннее limit.

    Разрез по возможности — по переводу строки (или пробелу) вне
    открытых блоков. Если блок кода сам длиннее limit, он закрывается
    в конце части и открывается заново в следующей.

    Args:
        text: Результат render()
        dialect: Диалект текста
        limit: Максимальная длина части

    Returns:
        Список частей (пустые части отброшены)
    """
    if limit < 32:
        raise ValueError("limit is too small")
    if len(text) <= limit:
        return [text] if text.strip() else []

    dialect = Dialect(dialect)
    atoms = _html_atoms(text) if dialect is Dialect.HTML else _markdown_atoms(text)

    chunks: list[str] = []
    current: list[str] = []
    size = 0
    reopened = 0
    stack: list[tuple[str, str]] = []
    # (индекс в current, размер до него) последней чистой точки разреза
    cut_newline: Optional[tuple[int, int]] = None
    cut_space: Optional[tuple[int, int]] = None

    for piece, kind, closer in atoms:
        reserve = sum(len(c) for _, c in stack)
        if kind == OPEN:
            reserve += len(closer)
        elif kind == CLOSE and stack:
            reserve -= len(stack[-1][1])

        if len(current) > reopened and size + len(piece) + reserve > limit:
            cut = cut_newline
            if cut is None or cut[1] < limit // 2:
                candidates = [c for c in (cut_newline, cut_space) if c]
                cut = max(candidates) if candidates else None

            if cut is not None:
                idx, cut_size = cut
                chunks.append("".join(current[:idx]))
                current = current[idx:]
                size -= cut_size
                reopened = 0

            if len(current) > reopened and size + len(piece) + reserve > limit:
                chunks.append("".join(current) + "".join(c for _, c in reversed(stack)))
                current = [opener for opener, _ in stack]
                size = sum(len(p) for p in current)
                reopened = len(current)

            cut_newline = cut_space = None

        current.append(piece)
        size += len(piece)

        if kind == OPEN:
            stack.append((piece, closer))
        elif kind == CLOSE and stack:
            stack.pop()

        if not stack:
            if piece == "\n":
                cut_newline = (len(current), size)
            elif piece == " ":
                cut_space = (len(current), size)

    if current:
        chunks.append("".join(current))
    return [c for c in chunks if c.strip()]
