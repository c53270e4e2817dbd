"""
cscrub/formatter.py
═══════════════════

Deterministic layout of a (transformed) program.

  • indentation by brace depth, a leading ``}`` one level out
  • token-based operator spacing on the code portion of a line
  • lines holding literals, block comments or preprocessor directives keep
    their code verbatim (trimmed)
  • trailing ``//`` comments re-attached after two spaces
  • blank runs collapsed; a blank line after an ``#include`` block and after
    every column-zero ``}``

Spacing roles
─────────────

  binary    a + b   x = y   a && b   c ? d : e
  unary     -x  !x  ~x  *p  &v      (after an operator, keyword or opener)
  prefix    ++i     postfix  i++
  member    s.field   p->next
  label     case 1:   done:

License: MIT
"""

from __future__ import annotations

from typing import List, Optional

from cscrub.lexer import (
    QUALIFIERS,
    RESERVED_WORDS,
    TYPE_KEYWORDS,
    LineView,
    Token,
    split_comment,
    split_lines,
    tokenize,
)

_SPACED_KEYWORDS = frozenset({"if", "while", "for", "switch", "return"})
_DECLARATOR_LEADS = frozenset(TYPE_KEYWORDS) | QUALIFIERS | {"void"}
_AMBIGUOUS = frozenset({"+", "-", "*", "&"})
_ALWAYS_UNARY = frozenset({"!", "~"})
_NO_SPACE_BEFORE = frozenset({",", ";", ")", "]", "["})


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — TOKEN SPACING
# ═════════════════════════════════════════════════════════════════════════

def _ends_operand(token: Optional[Token], role: Optional[str]) -> bool:
    """True if *token* can be the left operand of a binary operator."""
    if token is None:
        return False
    if token.kind == "number":
        return True
    if token.kind == "ident":
        return token.text not in RESERVED_WORDS or token.text in ("true", "false", "NULL")
    return token.text in (")", "]") or role == "postfix"


def _roles(tokens: List[Token]) -> List[str]:
    roles: List[str] = []
    pending_ternary = 0
    prev: Optional[Token] = None
    prev_role: Optional[str] = None
    for tok in tokens:
        text = tok.text
        if tok.kind != "op":
            role = "punct" if tok.kind == "punct" else "operand"
        elif text in (".", "->"):
            role = "member"
        elif text in ("++", "--"):
            role = "postfix" if _ends_operand(prev, prev_role) else "prefix"
        elif text in _ALWAYS_UNARY:
            role = "unary"
        elif text in _AMBIGUOUS:
            if text == "*" and prev is not None and prev.text in _DECLARATOR_LEADS:
                role = "declarator"
            elif _ends_operand(prev, prev_role):
                role = "binary"
            else:
                role = "unary"
        elif text == "?":
            pending_ternary += 1
            role = "binary"
        elif text == ":":
            if pending_ternary:
                pending_ternary -= 1
                role = "binary"
            else:
                role = "label"
        else:
            role = "binary"
        roles.append(role)
        prev, prev_role = tok, role
    return roles


def _separator(prev: Token, prev_role: str, cur: Token, cur_role: str) -> str:
    p, c = prev.text, cur.text
    if c in _NO_SPACE_BEFORE or cur_role in ("member", "postfix", "label"):
        return ""
    if p in ("(", "[") or prev_role in ("unary", "prefix", "member"):
        return ""
    if prev_role == "declarator":
        return ""
    if c == "(":
        if prev.kind == "ident" and p not in _SPACED_KEYWORDS:
            return ""
        if p in (")", "]"):
            return ""
        return " "
    if p == "{" and c == "}":
        return ""
    return " "


def space_tokens(code: str) -> str:
    """Re-space a fragment of code that holds no literals or comments."""
    tokens = tokenize(code)
    if not tokens:
        return ""
    roles = _roles(tokens)
    parts = [tokens[0].text]
    for k in range(1, len(tokens)):
        parts.append(_separator(tokens[k - 1], roles[k - 1], tokens[k], roles[k]))
        parts.append(tokens[k].text)
    return "".join(parts)


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — LINES
# ═════════════════════════════════════════════════════════════════════════

def _has_block_comment(view: LineView) -> bool:
    start = view.raw.find("/*")
    while start >= 0:
        if view.code[start] == " ":
            return True
        start = view.raw.find("/*", start + 1)
    return False


def _leading_closers(masked: str) -> int:
    count = 0
    for ch in masked.strip():
        if ch == "}":
            count += 1
        elif not ch.isspace():
            break
    return count


def _render(view: LineView) -> str:
    """The line's content without indentation."""
    stripped = view.stripped
    if view.in_block_comment or view.is_preprocessor or _has_block_comment(view):
        return stripped
    code, comment = split_comment(view.raw)
    code = code.strip()
    if not code:
        return comment.strip()
    if '"' not in code and "'" not in code:
        code = space_tokens(code)
    return f"{code}  {comment.strip()}" if comment else code


def _reindent(views: List[LineView], indent_unit: str) -> List[str]:
    lines: List[str] = []
    depth = 0
    for view in views:
        if view.is_blank:
            if lines and lines[-1] != "":
                lines.append("")
            continue
        if view.in_block_comment:
            body = view.stripped
            pad = " " if body.startswith("*") else ""
            lines.append(indent_unit * depth + pad + body)
            continue
        content = _render(view)
        if view.is_preprocessor:
            lines.append(content)
            continue
        masked = view.masked
        level = max(depth - _leading_closers(masked), 0)
        lines.append(indent_unit * level + content)
        depth = max(depth + masked.count("{") - masked.count("}"), 0)
    return lines


def _separate_sections(lines: List[str]) -> List[str]:
    out: List[str] = []
    for k, line in enumerate(lines):
        out.append(line)
        following = lines[k + 1] if k + 1 < len(lines) else ""
        if not following or following.startswith("#"):
            continue
        if line.startswith("#include") or (line.startswith("}") and "{" not in line):
            out.append("")
    return out


def format_source(source: str, indent_unit: str = "    ") -> str:
    """
    Lay out *source*.

    Parameters
    ----------
    source      : program text
    indent_unit : one level of indentation

    Returns
    -------
    The formatted program without leading or trailing blank lines and
    without a final newline; "" for a program with no content.
    """
    lines = _separate_sections(_reindent(split_lines(source), indent_unit))
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


__all__ = ["format_source", "space_tokens"]
