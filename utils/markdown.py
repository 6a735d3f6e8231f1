"""
Small markdown subset rendered to a safe HTML fragment.

Supported: fenced and inline code, bold, italic, links, #/##/### headings,
--- rules, numbered and bulleted lists, line breaks. Raw tags in the source
are dropped before anything else and the remaining text is escaped, so card
content can never inject markup. Input must always be markdown source, never
a previous render.
"""

import html as html_lib
import re

from utils.constants import CONTAINER_CLOSE, CONTAINER_OPEN, NO_CONTENT_HTML

_TAG_RE = re.compile(r'<[^>]*>')
_WHITESPACE_RE = re.compile(r'\s{2,}')

_CODE_BLOCK_RE = re.compile(r'```([\s\S]*?)```')
_INLINE_CODE_RE = re.compile(r'`([^`]+)`')
_BOLD_STAR_RE = re.compile(r'\*\*([^*]+?)\*\*')
_BOLD_UNDERSCORE_RE = re.compile(r'__([^_]+?)__')
_ITALIC_STAR_RE = re.compile(r'\*([^*\n]+?)\*')
_ITALIC_UNDERSCORE_RE = re.compile(r'_([^_\n]+?)_')
_LINK_RE = re.compile(r'\[([^\]]+)\]\(([^)]+)\)')
_H3_RE = re.compile(r'^### ([^\n]+)$', re.M)
_H2_RE = re.compile(r'^## ([^\n]+)$', re.M)
_H1_RE = re.compile(r'^# ([^\n]+)$', re.M)
_RULE_RE = re.compile(r'^---$', re.M)
_OL_ITEM_RE = re.compile(r'^\d+\.\s+')
_UL_ITEM_RE = re.compile(r'^[-*]\s+')

_BREAKS_RE = re.compile(r'(?:<br />){2,}')
_RULE_BREAKS_RE = re.compile(r'(?:<br />)*(?:<hr />)+(?:<br />)*')

_SAFE_SCHEME_RE = re.compile(r'^(?:https?|mailto):', re.I)
_SCHEME_RE = re.compile(r'^[^/?#]*:')
# Browsers drop these from a URL before reading its scheme.
_URL_NOISE_RE = re.compile(r'[\x00-\x20\x7f]')

# Stashed code spans and link tags; NUL never survives preprocessing.
_STASH = '\x00'
_STASH_RE = re.compile(_STASH + r'(\d+)' + _STASH)


def render(text):
    """Render markdown ``text`` to an HTML fragment wrapped in one container div."""
    if not text or not isinstance(text, str):
        return f'{CONTAINER_OPEN}{NO_CONTENT_HTML}{CONTAINER_CLOSE}'

    out = preprocess(text)
    out = html_lib.escape(out, quote=True)

    # Code is rendered first and kept out of reach of the inline rules below.
    stash = []

    def keep(fragment):
        stash.append(fragment)
        return f'{_STASH}{len(stash) - 1}{_STASH}'

    out = _CODE_BLOCK_RE.sub(lambda m: keep(f'<pre><code>{m.group(1).strip()}</code></pre>'), out)
    out = _INLINE_CODE_RE.sub(lambda m: keep(f'<code>{m.group(1)}</code>'), out)

    # Link tags are stashed too so emphasis markers inside a URL stay literal;
    # the label is left in place and still gets bold and italic.
    out = _LINK_RE.sub(lambda m: _link(m, keep), out)

    out = _BOLD_STAR_RE.sub(r'<strong>\1</strong>', out)
    out = _BOLD_UNDERSCORE_RE.sub(r'<strong>\1</strong>', out)
    out = _ITALIC_STAR_RE.sub(r'<em>\1</em>', out)
    out = _ITALIC_UNDERSCORE_RE.sub(r'<em>\1</em>', out)

    out = _H3_RE.sub(r'<h3>\1</h3>', out)
    out = _H2_RE.sub(r'<h2>\1</h2>', out)
    out = _H1_RE.sub(r'<h1>\1</h1>', out)
    out = _RULE_RE.sub('<hr />', out)

    out = group_lists(out)

    out = out.replace('\n', '<br />')
    out = _BREAKS_RE.sub('<br />', out)
    out = _RULE_BREAKS_RE.sub('<hr />', out)

    out = _STASH_RE.sub(lambda m: stash[int(m.group(1))], out)
    return f'{CONTAINER_OPEN}{out}{CONTAINER_CLOSE}'


def preprocess(text):
    """Drop raw tags (keeping their text), collapse whitespace runs, trim."""
    cleaned = _TAG_RE.sub('', text).replace(_STASH, '')
    cleaned = _WHITESPACE_RE.sub(' ', cleaned)
    return cleaned.strip()


def group_lists(text):
    """
    Wrap consecutive numbered lines in <ol> and bulleted lines in <ul>.

    Works line by line on text whose newlines are not yet converted. A list
    closes at the first non-list line, a blank line, or a switch of list kind.
    Blank lines are dropped.
    """
    lines = []
    open_tag = None

    for line in text.split('\n'):
        stripped = line.strip()
        if _OL_ITEM_RE.match(stripped):
            tag, item = 'ol', _OL_ITEM_RE.sub('', stripped, count=1)
        elif _UL_ITEM_RE.match(stripped):
            tag, item = 'ul', _UL_ITEM_RE.sub('', stripped, count=1)
        else:
            tag, item = None, None

        if tag is None:
            if open_tag:
                lines[-1] += f'</{open_tag}>'
                open_tag = None
            if stripped:
                lines.append(line)
            continue

        if open_tag != tag:
            if open_tag:
                lines[-1] += f'</{open_tag}>'
            lines.append(f'<{tag}>')
            open_tag = tag
        lines[-1] += f'<li>{item}</li>'

    if open_tag:
        lines[-1] += f'</{open_tag}>'
    return '\n'.join(lines)


def is_safe_url(url):
    """
    True for http(s) and mailto URLs and for relative ones.

    The scheme is read the way a browser reads it, after dropping control
    characters and spaces, so ``\\x01javascript:`` or ``java\\tscript:`` are
    rejected like plain ``javascript:``.
    """
    if _STASH in url:
        return False
    cleaned = _URL_NOISE_RE.sub('', url)
    return bool(_SAFE_SCHEME_RE.match(cleaned)) or not _SCHEME_RE.match(cleaned)


def _link(match, keep):
    label, url = match.group(1), match.group(2).strip()
    if not is_safe_url(url):
        # javascript:, data: and friends render as plain text
        return label
    return keep(f'<a href="{url}" target="_blank" rel="noopener noreferrer">') + label + keep('</a>')


def strip_to_plain_text(text):
    """Remove markdown markers, keeping the inner text. Never raises on partial markup."""
    if not text or not isinstance(text, str):
        return ''
    plain = _CODE_BLOCK_RE.sub('', text)
    plain = _INLINE_CODE_RE.sub(r'\1', plain)
    plain = _BOLD_STAR_RE.sub(r'\1', plain)
    plain = _BOLD_UNDERSCORE_RE.sub(r'\1', plain)
    plain = _ITALIC_STAR_RE.sub(r'\1', plain)
    plain = _ITALIC_UNDERSCORE_RE.sub(r'\1', plain)
    plain = _LINK_RE.sub(r'\1', plain)
    plain = re.sub(r'^[#\s]+', '', plain, flags=re.M)
    plain = _RULE_RE.sub('', plain)
    plain = re.sub(r'^\s*[-*]\s+', '', plain, flags=re.M)
    plain = re.sub(r'^\s*\d+\.\s+', '', plain, flags=re.M)
    return plain.strip()
