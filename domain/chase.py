# domain/chase.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from domain.page import Page

DEFAULT_LIMIT = 10

# None を返せば継続、例外値を返せば chase を中断する
ProgressCallback = Callable[[Page], Optional[BaseException]]


@dataclass(frozen=True)
class HopRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    protocol: str = "HTTP/1.1"

    @classmethod
    def get(cls, url: str) -> "HopRequest":
        return cls(method="GET", url=url)

    def with_header(self, name: str, value: str) -> "HopRequest":
        headers = {k: v for k, v in self.headers.items() if k.lower() != name.lower()}
        headers[name] = value
        return HopRequest(method=self.method, url=self.url, headers=headers, protocol=self.protocol)


@dataclass(frozen=True)
class ChaseConfig:
    limit: int = DEFAULT_LIMIT          # 0 => unlimited
    timeout_sec: float = 0              # whole chase, 0 => none
    user_agent: str = ""                # "" => transport default
    progress: Optional[ProgressCallback] = None

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError(f"limit must be >= 0: {self.limit}")
        if self.timeout_sec < 0:
            raise ValueError(f"timeout_sec must be >= 0: {self.timeout_sec}")


@dataclass(frozen=True)
class ChaseResult:
    pages: Tuple[Page, ...]
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def final_page(self) -> Optional[Page]:
        return self.pages[-1] if self.pages else None
