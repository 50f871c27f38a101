"""Laravel releases offered by the version menu."""

from __future__ import annotations

from enum import Enum


class LaravelRelease(str, Enum):
    """Laravel major versions that can be installed with composer.

    The value is the version constraint shown to the operator; ``package``
    is what gets passed to ``composer create-project``.
    """

    LARAVEL_7 = "^7.0"
    LARAVEL_8 = "^8.0"
    LARAVEL_9 = "^9.0"
    LARAVEL_10 = "^10.0"
    LARAVEL_11 = "^11.0"
    LARAVEL_12 = "^12.0"

    @classmethod
    def default(cls) -> "LaravelRelease":
        return cls.LARAVEL_12

    @classmethod
    def from_menu(cls, choice: str) -> "LaravelRelease | None":
        """Map a menu answer to a release.

        An empty answer selects the default; unknown answers return ``None``.
        """

        key = choice.strip()
        if not key:
            return cls.default()
        return _MENU.get(key)

    @property
    def major(self) -> int:
        return int(self.value.lstrip("^").split(".", 1)[0])

    @property
    def package(self) -> str:
        # 8.* keeps composer from resolving a 9.x skeleton.
        if self is LaravelRelease.LARAVEL_8:
            return "laravel/laravel:8.*"
        return f"laravel/laravel:{self.value}"

    def label(self) -> str:
        return f"Laravel {self.major}"


_MENU: dict[str, LaravelRelease] = {
    str(index): release for index, release in enumerate(LaravelRelease, start=1)
}

DEFAULT_MENU_KEY = "6"


def release_menu() -> list[tuple[str, LaravelRelease]]:
    """Menu entries in display order (``1`` .. ``6``)."""

    return sorted(_MENU.items(), key=lambda item: int(item[0]))
