"""Semantic version value type shared by the reducer and the query engine.

Both sides of the marketplace order plugins by version, so they must agree
on one precedence: strict SemVer 2.0 (``MAJOR.MINOR.PATCH[-pre][+build]``).
Build metadata is carried for display but ignored for ordering and equality.
"""

from __future__ import annotations

import functools


class InvalidVersionError(ValueError):
    """Raised when a version string is empty or is not valid SemVer."""


def _parse_numeric(text: str, label: str) -> int:
    if not text.isdigit() or not text.isascii():
        raise InvalidVersionError(f"Invalid character(s) found in {label} number {text!r}")
    if len(text) > 1 and text[0] == "0":
        raise InvalidVersionError(f"{label.capitalize()} number must not contain leading zeroes {text!r}")
    return int(text)


def _check_identifiers(parts: list[str], label: str) -> None:
    for part in parts:
        if not part:
            raise InvalidVersionError(f"{label} identifier is empty")
        if not all(c.isascii() and (c.isalnum() or c == "-") for c in part):
            raise InvalidVersionError(f"Invalid character(s) found in {label} {part!r}")


@functools.total_ordering
class SemVer:
    """An immutable, totally ordered semantic version.

    Examples
    --------
    >>> SemVer.parse("1.2.3-beta.1") < SemVer.parse("1.2.3")
    True
    >>> str(SemVer.parse("0.1.0+build.7"))
    '0.1.0+build.7'
    """

    __slots__ = ("major", "minor", "patch", "pre", "build")

    def __init__(
        self,
        major: int,
        minor: int,
        patch: int,
        pre: tuple[str, ...] = (),
        build: tuple[str, ...] = (),
    ) -> None:
        object.__setattr__(self, "major", major)
        object.__setattr__(self, "minor", minor)
        object.__setattr__(self, "patch", patch)
        object.__setattr__(self, "pre", tuple(pre))
        object.__setattr__(self, "build", tuple(build))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("SemVer is immutable")

    @classmethod
    def parse(cls, text: str) -> SemVer:
        """Parse *text* as a strict semantic version.

        Raises
        ------
        InvalidVersionError
            If *text* is empty or malformed.
        """
        if not text:
            raise InvalidVersionError("Version string empty")
        if text != text.strip():
            raise InvalidVersionError(f"Version string has surrounding whitespace {text!r}")

        core, _, build_text = text.partition("+")
        core, has_pre, pre_text = core.partition("-")

        elements = core.split(".")
        if len(elements) != 3:
            raise InvalidVersionError("No Major.Minor.Patch elements found")
        major = _parse_numeric(elements[0], "major")
        minor = _parse_numeric(elements[1], "minor")
        patch = _parse_numeric(elements[2], "patch")

        pre: list[str] = []
        if has_pre:
            pre = pre_text.split(".")
            _check_identifiers(pre, "prerelease")
            for part in pre:
                if part.isdigit() and len(part) > 1 and part[0] == "0":
                    raise InvalidVersionError(
                        f"Numeric prerelease identifier must not contain leading zeroes {part!r}"
                    )

        build: list[str] = []
        if "+" in text:
            build = build_text.split(".")
            _check_identifiers(build, "build metadata")

        return cls(major, minor, patch, tuple(pre), tuple(build))

    @classmethod
    def is_valid(cls, text: str) -> bool:
        """Return ``True`` if *text* parses as a semantic version."""
        try:
            cls.parse(text)
        except InvalidVersionError:
            return False
        return True

    # -- Ordering -----------------------------------------------------------

    def _precedence_key(self) -> tuple:
        # A release (no prerelease) outranks every prerelease of the same core.
        if not self.pre:
            return (self.major, self.minor, self.patch, 1, ())
        identifiers = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.pre
        )
        return (self.major, self.minor, self.patch, 0, identifiers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence_key() == other._precedence_key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._precedence_key() < other._precedence_key()

    def __hash__(self) -> int:
        return hash(self._precedence_key())

    # -- Rendering ----------------------------------------------------------

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += "-" + ".".join(self.pre)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def __repr__(self) -> str:
        return f"SemVer({str(self)!r})"
