from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol


class RunInputs(Protocol):
    def get_file_path(self) -> str: ...
    def get_ignore_list(self) -> str: ...
    def get_rank_filter(self) -> Optional[int]: ...
    def get_ignore_no_rank(self) -> bool: ...


def parse_rank_filter(text: Optional[str]) -> Optional[int]:
    """'' -> None; '100' / '100,000' -> 100 / 100000; outro texto -> ValueError."""
    if text is None:
        return None
    s = text.strip().replace(",", "").replace("_", "")
    if not s:
        return None
    value = int(s)
    if value < 0:
        raise ValueError(f"Rank filter must be >= 0, got {value}")
    return value


def parse_yes_no(text: Optional[str]) -> bool:
    return (text or "").strip().lower() in {"y", "yes", "s", "sim", "true", "1"}


@dataclass
class StaticInputs:
    file_path: str
    ignore_list: str = ""
    rank_filter: Optional[int] = None
    ignore_no_rank: bool = False

    def get_file_path(self) -> str:
        return self.file_path

    def get_ignore_list(self) -> str:
        return self.ignore_list

    def get_rank_filter(self) -> Optional[int]:
        return self.rank_filter

    def get_ignore_no_rank(self) -> bool:
        return self.ignore_no_rank


class PromptInputs:
    """Pergunta ao utilizador (stdin). Cada valor é pedido uma vez e fica em cache."""

    def __init__(self, ask: Callable[[str], str] = input, echo: Callable[[str], None] = print):
        self.ask = ask
        self.echo = echo
        self._cache: dict = {}

    def _once(self, key: str, fn: Callable[[], object]) -> object:
        if key not in self._cache:
            self._cache[key] = fn()
        return self._cache[key]

    def get_file_path(self) -> str:
        def _ask() -> str:
            while True:
                path = self.ask("Enter the path to your CSV file: ").strip().strip('"').strip("'")
                if path:
                    return path
                self.echo("A file path is required.")
        return str(self._once("file_path", _ask))

    def get_ignore_list(self) -> str:
        return str(self._once(
            "ignore_list",
            lambda: self.ask("Companies to ignore (comma-separated, blank for none): ").strip(),
        ))

    def get_rank_filter(self) -> Optional[int]:
        def _ask() -> Optional[int]:
            while True:
                raw = self.ask("Maximum sales rank (blank for no limit): ")
                try:
                    return parse_rank_filter(raw)
                except ValueError:
                    self.echo(f"Not a valid rank: {raw!r}")
        return self._once("rank_filter", _ask)  # type: ignore[return-value]

    def get_ignore_no_rank(self) -> bool:
        return bool(self._once(
            "ignore_no_rank",
            lambda: parse_yes_no(self.ask("Ignore items with no sales rank? (yes/no): ")),
        ))
