"""Runtime helpers for deploying the memory resolution engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from .clients import PROVIDERS, LLMClient
from .delegates import build_llm_delegates
from .manager import MemoryManager
from .schemas import MemoryResponse
from .storage import FactDatabase

logger = logging.getLogger(__name__)

OPERATIONS = ("prompt", "update", "delete")


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def dispatch_request(manager: MemoryManager, request: Mapping[str, Any]) -> MemoryResponse:
    """Route one decoded request to the matching manager entry point.

    Fields that are not non-blank strings are passed on as missing, so the
    manager rejects them with a 400.
    """

    op = str(request.get("op") or "prompt")
    user_id = request.get("userId")
    user_id = str(user_id) if user_id not in (None, "") else None
    memory_id = _text(request.get("memoryId"))
    if op == "update":
        return manager.commit_update(memory_id, _text(request.get("newValue")), user_id)
    if op == "delete":
        return manager.commit_delete(memory_id, user_id)
    if op == "prompt":
        return manager.handle_prompt(_text(request.get("prompt")), user_id)
    return MemoryResponse(message=f"Unknown operation '{op}'", status=400)


@dataclass
class MemoryRuntime:
    """Wire the SQLite store and LLM delegates into a :class:`MemoryManager`."""

    db_path: str = "memories.sqlite"
    llm_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4-turbo"
    llm_provider: str = "openai"
    api_key_env: Optional[str] = None

    def __post_init__(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
            self.database = FactDatabase(str(Path(self.db_path).expanduser()))
        else:
            self.database = FactDatabase(":memory:")

        self.llm_client = LLMClient(
            base_url=self.llm_url,
            model=self.llm_model,
            provider=self.llm_provider,
            api_key_env=self.api_key_env,
        )
        classifier, extractor, composer = build_llm_delegates(self.llm_client)
        self.manager = MemoryManager(
            store=self.database,
            classifier=classifier,
            extractor=extractor,
            composer=composer,
            error_sink=self.database.record_error,
        )

    def handle(self, request: Mapping[str, Any]) -> MemoryResponse:
        return dispatch_request(self.manager, request)


def _iter_requests(stream: Iterable[str]) -> Iterable[Mapping[str, Any]]:
    for raw_line in stream:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            request = json.loads(line)
        except json.JSONDecodeError as exc:  # pragma: no cover - CLI guard
            logger.error("Skipping malformed JSON line: %s", line)
            raise SystemExit(1) from exc
        if not isinstance(request, Mapping) or request.get("op", "prompt") not in OPERATIONS:
            logger.error("Each line must be an object with op in %s: %s", OPERATIONS, line)
            raise SystemExit(1)
        yield request


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the memory resolution engine")
    parser.add_argument("--db", default="memories.sqlite", help="SQLite file for storing memories")
    parser.add_argument("--llm-url", default="https://api.openai.com/v1", help="Base URL of the LLM server")
    parser.add_argument("--llm-model", default="gpt-4-turbo", help="LLM model name exposed by the server")
    parser.add_argument(
        "--llm-provider",
        choices=list(PROVIDERS),
        default="openai",
        help="LLM provider type",
    )
    parser.add_argument(
        "--api-key-env",
        help="Environment variable holding the API key (defaults per provider).",
    )
    parser.add_argument(
        "--input",
        type=Path,
        help="Optional path to a JSONL file of requests. Defaults to reading from standard input.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging to trace prompt/response payloads.",
    )

    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    runtime = MemoryRuntime(
        db_path=str(args.db),
        llm_url=args.llm_url,
        llm_model=args.llm_model,
        llm_provider=args.llm_provider,
        api_key_env=args.api_key_env,
    )

    def _run_stream(stream: Iterable[str]) -> int:
        failures = 0
        for request in _iter_requests(stream):
            response = runtime.handle(request)
            if not response.ok:
                failures += 1
            print(json.dumps({"status": response.status, **response.to_payload()}, ensure_ascii=False))
        return failures

    if args.input:
        with args.input.open("r", encoding="utf-8") as fh:
            failures = _run_stream(fh)
    else:
        failures = _run_stream(sys.stdin)

    return 1 if failures else 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
