"""
Scenario Report - Structured failure reports for drain verification runs.

Format designed to be:
1. Machine-parseable (JSON)
2. Self-contained: drain URLs, tags, stream excerpt and teardown errors
3. Readable as markdown for a quick human triage
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from drainwatch.core.logging import redact_secrets
from drainwatch.harness.scenario import ScenarioResult


def _scrub(value: Any) -> Any:
    """Apply secret redaction to every string in a JSON-ready structure."""
    if isinstance(value, str):
        return redact_secrets(value)
    if isinstance(value, dict):
        return {k: _scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


@dataclass
class ScenarioReport:
    """Report for one ScenarioResult."""

    result: ScenarioResult

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready view with credentials scrubbed from every field."""
        result = self.result
        finished = result.finished_at or result.started_at
        return _scrub({
            "scenario_id": result.scenario_id,
            "name": result.name,
            "passed": result.passed,
            "started_at": result.started_at.isoformat(),
            "finished_at": finished.isoformat(),
            "duration_seconds": (finished - result.started_at).total_seconds(),
            "states": [s.value for s in result.states],
            "summary": self._generate_summary(),
            "failure": {
                "kind": result.failure.kind.value,
                "message": result.failure.message,
                "details": result.failure.details,
            } if result.failure else None,
            "drain_urls": result.drain_urls,
            "expected_tags": result.expected_tags,
            "forbidden_tags": result.forbidden_tags,
            "worker_faults": [
                {"producer": f.producer, "tag": f.tag, "error": repr(f.error)}
                for f in result.faults
            ],
            "teardown_errors": result.teardown_errors,
            "stream_excerpt": result.stream_excerpt,
        })

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)

    def save(self, directory: Path | str = "test-results/drain-reports") -> Path:
        """Save report to a JSON file and return the path."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in self.result.name)
        timestamp = self.result.started_at.strftime("%Y%m%d_%H%M%S")
        filepath = directory / f"{safe_name}_{timestamp}_{self.result.scenario_id[:8]}.json"
        filepath.write_text(self.to_json())

        return filepath

    def _generate_summary(self) -> str:
        """One line for quick triage."""
        result = self.result
        parts = []

        if result.failure:
            parts.append(f"{result.failure.kind.value}: {result.failure.message[:120]}")
        if result.faults:
            parts.append(f"{len(result.faults)} worker fault(s)")
        if result.teardown_errors:
            parts.append(f"{len(result.teardown_errors)} teardown error(s)")

        if not parts:
            return "passed"
        return " | ".join(parts)

    def to_markdown(self) -> str:
        """Generate markdown report for human review."""
        result = self.result
        status = "PASSED" if result.passed else "FAILED"

        md = f"""# Drain Verification Report

## Scenario: `{result.name}` {status}

**ID:** `{result.scenario_id}`
**States:** {' -> '.join(s.value for s in result.states)}
**Summary:** {self._generate_summary()}

---
"""

        if result.drain_urls:
            md += "\n## Drains\n\n"
            for url in result.drain_urls:
                md += f"- `{url}`\n"

        if result.failure:
            md += f"\n## Failure\n\n```\n{result.failure.message}\n```\n"

        if result.faults:
            md += "\n## Worker Faults\n\n"
            for fault in result.faults[:3]:
                md += f"### {fault.producer}\n\n```\n{fault.traceback}\n```\n\n"

        if result.teardown_errors:
            md += "\n## Teardown Errors\n\n"
            for error in result.teardown_errors:
                md += f"- {error}\n"

        if result.stream_excerpt:
            lines = result.stream_excerpt.splitlines()
            md += "\n## Listener Stream (last 20 lines)\n\n```\n"
            md += "\n".join(lines[-20:])
            md += "\n```\n"

        return redact_secrets(md)
