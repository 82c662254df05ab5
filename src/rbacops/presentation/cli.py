"""Command-line entry point: load a policy, then answer access queries.

Examples::

    rbacops --data-dir policy/                      # interactive session
    rbacops --data-dir policy/ --query U1 O1 read   # one answer, exit code
    rbacops --config rbacops.yaml --query U1        # list U1's permissions

In a one-shot query ``-`` stands for "any object" / "any permission".  Exit
codes: 0 accepted or listed, 1 rejected or invalid query, 2 policy load
failure.
"""
from __future__ import annotations

import argparse
import sys
import uuid
from collections.abc import Callable
from typing import Any

import structlog
from pydantic import ValidationError

from rbacops.config import Settings
from rbacops.domain.value_objects import ObjectId, PermissionId, UserId
from rbacops.engine.evaluator import AccessQueryEvaluator, QueryResult
from rbacops.infrastructure.logging import bind_run_id, clear_run_id, setup_logging
from rbacops.presentation import display
from rbacops.shared.exceptions import InvalidIdentifierError, RbacOpsError
from rbacops.sources.loader import LoadStage, PolicyKernel, PolicyLoader
from rbacops.sources.retry import InteractiveRetryPolicy, RetryPolicy

logger = structlog.get_logger(__name__)

ANY = "-"

EXIT_OK = 0
EXIT_DENIED = 1
EXIT_LOAD_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="rbacops",
        description="Evaluate RBAC96 access queries against flat-text policy files.",
    )
    ap.add_argument("--config", help="YAML settings file")
    ap.add_argument("--data-dir", help="directory holding the policy files")
    ap.add_argument("--log-level", choices=["debug", "info", "warning", "error", "critical"])
    ap.add_argument("--json-logs", action="store_true", default=None, help="emit JSON log lines")
    ap.add_argument(
        "--max-attempts",
        type=int,
        help="re-read a rejected file at most N times instead of prompting",
    )
    ap.add_argument("--columns", type=int, help="object columns per printed sub-matrix")
    ap.add_argument(
        "--query",
        nargs="+",
        metavar="ARG",
        help="USER [OBJECT [PERMISSION]]: answer one query and exit",
    )
    return ap


def resolve_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {}
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.json_logs is not None:
        overrides["json_logs"] = args.json_logs
    if args.max_attempts is not None:
        overrides["max_load_attempts"] = args.max_attempts
    if args.columns is not None:
        overrides["matrix_columns"] = args.columns
    if args.config:
        return Settings.from_yaml(args.config, **overrides)
    return Settings(**overrides)


def stage_printer(settings: Settings, out: Callable[[str], None] = print) -> Callable[[LoadStage, Any], None]:
    """Observer printing each load checkpoint the way an operator reads it."""

    def _print(stage: LoadStage, value: Any) -> None:
        if stage is LoadStage.HIERARCHY:
            out("\nRole Hierarchy:")
            out(display.render_hierarchy(value))
        elif stage is LoadStage.INITIAL_MATRIX:
            out("\nInitial Role-Object Matrix:")
            out(display.render_matrix(value, settings.matrix_columns, settings.term_width))
        elif stage is LoadStage.MATRIX:
            out("\nRole-Object Matrix after adding permissions from file:")
            out(display.render_matrix(value, settings.matrix_columns, settings.term_width))
        elif stage is LoadStage.CONSTRAINTS:
            out("\nSSD Constraints:")
            out(display.render_constraints(value))
        elif stage is LoadStage.ASSIGNMENTS:
            out("\nUser-Role Matrix:")
            out(display.render_user_roles(value))

    return _print


def parse_query(user: str, obj: str = "", permission: str = "") -> tuple[UserId, ObjectId | None, PermissionId | None]:
    """Turn raw query fields into identifiers; blank or ``-`` means any."""
    obj = obj.strip()
    permission = permission.strip()
    return (
        UserId.parse(user),
        ObjectId.parse(obj) if obj and obj != ANY else None,
        PermissionId.parse(permission) if permission and permission != ANY else None,
    )


def answer(evaluator: AccessQueryEvaluator, user: str, obj: str = "", permission: str = "") -> QueryResult:
    return evaluator.evaluate(*parse_query(user, obj, permission))


def interactive_loop(
    evaluator: AccessQueryEvaluator,
    prompt: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
) -> int:
    """Prompt for queries until an empty user or end of input.

    Returns:
        Number of queries answered.
    """
    answered = 0
    while True:
        try:
            user = prompt("User: ").strip()
            if not user:
                break
            obj = prompt("Object: ")
            permission = prompt("Permission: ")
        except EOFError:
            break
        try:
            result = answer(evaluator, user, obj, permission)
        except InvalidIdentifierError as exc:
            out(exc.message)
            continue
        rendered = display.render_query_result(result)
        if rendered:
            out(rendered)
        answered += 1
    logger.info("interactive_session_ended", queries=answered)
    return answered


def run_query(kernel: PolicyKernel, fields: list[str]) -> int:
    if len(fields) > 3:
        print("--query takes at most USER OBJECT PERMISSION", file=sys.stderr)
        return EXIT_DENIED
    try:
        result = answer(kernel.evaluator, *fields)
    except InvalidIdentifierError as exc:
        print(exc.message, file=sys.stderr)
        return EXIT_DENIED
    rendered = display.render_query_result(result)
    if rendered:
        print(rendered)
    return EXIT_OK if result else EXIT_DENIED


def main(argv: list[str] | None = None, prompt: Callable[[str], str] = input) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = resolve_settings(args)
    except RbacOpsError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return EXIT_LOAD_FAILED
    except ValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_LOAD_FAILED

    setup_logging(settings.log_level, settings.json_logs, settings.log_file)
    bind_run_id(uuid.uuid4().hex[:12])
    try:
        return run_session(args, settings, prompt)
    finally:
        clear_run_id()


def run_session(args: argparse.Namespace, settings: Settings, prompt: Callable[[str], str]) -> int:
    """Load the policy, then answer the one-shot query or run the prompt loop."""
    one_shot = args.query is not None
    if settings.max_load_attempts is None and not one_shot:
        retry: RetryPolicy = InteractiveRetryPolicy(delay_seconds=settings.retry_delay_seconds, prompt=prompt)
    else:
        # A one-shot query never waits on an operator.
        retry = RetryPolicy(
            max_attempts=settings.max_load_attempts or 1,
            delay_seconds=settings.retry_delay_seconds,
        )
    observer = None if one_shot else stage_printer(settings)

    try:
        kernel = PolicyLoader(settings, retry, observer).load()
    except RbacOpsError as exc:
        logger.error("policy_load_failed", **exc.to_dict())
        print(f"error: {exc.message}", file=sys.stderr)
        return EXIT_LOAD_FAILED

    if not one_shot:
        for diagnostic in kernel.diagnostics:
            print(f"Skipped line {diagnostic.line} in {diagnostic.source}: {diagnostic.reason}")

    if one_shot:
        return run_query(kernel, args.query)

    print()
    interactive_loop(kernel.evaluator, prompt)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
