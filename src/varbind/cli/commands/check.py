"""
Check Command - Validate a document before it ships.

Reports alias cycles, dangling and ill-typed bindings, and variables that
fail to resolve in any mode of their collection. Exits non-zero when a
problem is found, so it can gate CI.
"""

import sys
from enum import StrEnum
from typing import Any, Dict, List

import click
from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from ...core.graph import AliasGraph
from ...core.resolver import Resolver
from ...core.store import StoreSnapshot
from ...io.serialization import Document
from ...scene.properties import property_spec, supports_property
from ..utils import echo_success, load_config_or_exit, load_document_or_exit, render_json

console = Console()


# --- API Models ---
class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class CheckIssue(BaseModel):
    code: str
    severity: Severity
    subject: str
    message: str
    source_chain: List[str] = Field(default_factory=list)


class CheckResponse(BaseModel):
    passed: bool
    error_count: int
    warning_count: int
    issues: List[CheckIssue] = Field(default_factory=list)
    alias_graph: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Checks
# =============================================================================


def _check_cycles(graph: AliasGraph) -> List[CheckIssue]:
    return [
        CheckIssue(
            code="circular_reference",
            severity=Severity.ERROR,
            subject=cycle[0],
            message=f"Alias cycle: {' -> '.join(cycle)}",
            source_chain=cycle,
        )
        for cycle in graph.find_cycles()
    ]


def _check_bindings(document: Document, snapshot: StoreSnapshot) -> List[CheckIssue]:
    issues: List[CheckIssue] = []
    for binding in snapshot.iter_bindings():
        ref = str(binding.ref)
        spec = property_spec(binding.property_path)
        variable = snapshot.get_variable(binding.variable_id)

        if spec is None:
            issues.append(CheckIssue(code="unknown_property", severity=Severity.ERROR,
                                     subject=ref, message=f"'{binding.property_path}' is not bindable"))
            continue
        if variable is None:
            issues.append(CheckIssue(code="dangling_reference", severity=Severity.ERROR, subject=ref,
                                     message=f"Bound to missing variable '{binding.variable_id}'"))
            continue
        if variable.type != spec.type:
            issues.append(CheckIssue(
                code="type_mismatch", severity=Severity.ERROR, subject=ref,
                message=f"Expects {spec.type.value}, '{variable.id}' is {variable.type.value}",
            ))
        elif not variable.allows_scope(spec.scope):
            issues.append(CheckIssue(
                code="scope_mismatch", severity=Severity.WARNING, subject=ref,
                message=f"'{variable.id}' is not scoped for {spec.scope.value}",
            ))

        if document.scene is not None:
            node = document.scene.get_node(binding.node_id)
            if node is None:
                issues.append(CheckIssue(code="missing_node", severity=Severity.WARNING, subject=ref,
                                         message=f"Scene has no node '{binding.node_id}'"))
            elif not supports_property(node.type, binding.property_path):
                issues.append(CheckIssue(
                    code="unsupported_property", severity=Severity.WARNING, subject=ref,
                    message=f"{node.type.value} nodes have no '{binding.property_path}'",
                ))
    return issues


def _check_variables(snapshot: StoreSnapshot) -> List[CheckIssue]:
    """Resolve every variable in every mode of its collection."""
    issues: List[CheckIssue] = []
    resolver = Resolver(snapshot)
    for variable in sorted(snapshot.iter_variables(), key=lambda v: v.id):
        collection = snapshot.get_collection(variable.collection_id)
        if collection is None:
            issues.append(CheckIssue(
                code="missing_collection", severity=Severity.ERROR, subject=variable.id,
                message=f"Collection '{variable.collection_id}' does not exist",
            ))
            continue
        for mode in collection.modes:
            result = resolver.resolve_variable(variable.id, mode_override=mode.id)
            if result.is_ok():
                continue
            error = result.error
            if error.code == "circular_reference":
                # Reported once per cycle by _check_cycles.
                continue
            issues.append(CheckIssue(
                code=error.code,
                severity=Severity.WARNING if error.code == "missing_mode_value" else Severity.ERROR,
                subject=f"{variable.id}[{mode.id}]",
                message=error.message,
                source_chain=error.source_chain,
            ))
    return issues


def run_checks(document: Document) -> CheckResponse:
    snapshot = document.store.snapshot()
    graph = AliasGraph.from_reader(snapshot)
    issues = _check_cycles(graph) + _check_bindings(document, snapshot) + _check_variables(snapshot)
    errors = sum(1 for i in issues if i.severity == Severity.ERROR)
    return CheckResponse(
        passed=errors == 0,
        error_count=errors,
        warning_count=len(issues) - errors,
        issues=issues,
        alias_graph=graph.get_stats(),
    )


# =============================================================================
# CLI Command
# =============================================================================


@click.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("--strict", is_flag=True, help="Treat warnings as failures")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def check(ctx: click.Context, document: str, strict: bool, as_json: bool):
    """Validate bindings and aliases in DOCUMENT."""
    load_config_or_exit(ctx)
    response = run_checks(load_document_or_exit(document))
    failed = not response.passed or (strict and response.warning_count > 0)

    if as_json:
        render_json("check", response)
        sys.exit(1 if failed else 0)

    if not response.issues:
        echo_success("No problems found")
        return

    table = Table(title=f"{len(response.issues)} problem(s)")
    table.add_column("Severity")
    table.add_column("Code", style="cyan")
    table.add_column("Subject", style="bold")
    table.add_column("Message")
    for issue in response.issues:
        color = "red" if issue.severity == Severity.ERROR else "yellow"
        table.add_row(f"[{color}]{issue.severity.value}[/{color}]", issue.code,
                      issue.subject, issue.message)
    console.print(table)
    sys.exit(1 if failed else 0)
