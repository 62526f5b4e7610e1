"""Parser for the plaintext body of git commit and tag objects.

git hands the signing program the object exactly as it will be hashed::

    tree <sha>
    parent <sha>            (zero or more)
    author <ident>
    committer <ident>
    <remaining bytes, verbatim>

or, for annotated tags::

    object <sha>
    type <kind>
    tag <name>
    tagger <ident>
    <remaining bytes, verbatim>

The signature covers these exact bytes, so the trailing message is never
normalized.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Union

from . import crypto
from .errors import KrError


class ParseError(KrError):
    """Raised when the input is not a well-formed commit or tag object."""


@dataclass(frozen=True)
class CommitInfo:
    """Fields of a git commit object."""

    tree: str
    author: str
    committer: str
    message: bytes
    parent: str | None = None
    merge_parents: list[str] | None = None

    def to_dict(self) -> dict:
        return {
            "tree": self.tree,
            "parent": self.parent,
            "merge_parents": self.merge_parents,
            "author": self.author,
            "committer": self.committer,
            "message": crypto.b64encode(self.message),
        }


@dataclass(frozen=True)
class TagInfo:
    """Fields of an annotated git tag object."""

    object: str
    type: str
    tag: str
    tagger: str
    message: bytes

    def to_dict(self) -> dict:
        return {
            "object": self.object,
            "type": self.type,
            "tag": self.tag,
            "tagger": self.tagger,
            "message": crypto.b64encode(self.message),
        }


GitObject = Union[CommitInfo, TagInfo]


def _read_header(reader: io.BytesIO) -> tuple[str, str]:
    """Read one ``tag value`` header line.

    Returns:
        Tuple of (first token, remaining tokens joined by single spaces).
    """
    line = reader.readline()
    if not line:
        raise ParseError("unexpected end of object")
    if not line.endswith(b"\n"):
        raise ParseError("unterminated header line")
    try:
        tokens = line.decode("utf-8").split()
    except UnicodeDecodeError as exc:
        raise ParseError(f"header is not valid UTF-8: {exc}") from exc
    if not tokens:
        raise ParseError("no tokens")
    return tokens[0], " ".join(tokens[1:])


def _expect(reader: io.BytesIO, expected: str) -> str:
    tag, value = _read_header(reader)
    if tag != expected:
        raise ParseError(f"expected {expected!r} line, got {tag!r}")
    return value


def _parse_commit(tree: str, reader: io.BytesIO) -> CommitInfo:
    parent: str | None = None
    merge_parents: list[str] | None = None
    while True:
        tag, value = _read_header(reader)
        if tag == "parent":
            if parent is None:
                parent = value
            else:
                if merge_parents is None:
                    merge_parents = []
                merge_parents.append(value)
        elif tag == "author":
            author = value
            break
        else:
            raise ParseError(f"unexpected tag: {tag}")

    committer = _expect(reader, "committer")
    return CommitInfo(
        tree=tree,
        parent=parent,
        merge_parents=merge_parents,
        author=author,
        committer=committer,
        message=reader.read(),
    )


def _parse_tag(obj: str, reader: io.BytesIO) -> TagInfo:
    type_ = _expect(reader, "type")
    tag = _expect(reader, "tag")
    tagger = _expect(reader, "tagger")
    return TagInfo(object=obj, type=type_, tag=tag, tagger=tagger, message=reader.read())


def parse_git_object(data: bytes) -> GitObject:
    """Parse a git commit or tag object.

    Args:
        data: The exact bytes git wrote to the signing program's stdin.

    Returns:
        A CommitInfo for ``tree`` objects or a TagInfo for ``object`` tags.

    Raises:
        ParseError: On any grammar violation. No partial record is returned.
    """
    reader = io.BytesIO(data)
    tag, value = _read_header(reader)
    if tag == "tree":
        return _parse_commit(value, reader)
    if tag == "object":
        return _parse_tag(value, reader)
    raise ParseError(f"unrecognized object tag: {tag}")
