"""Lifecycle hook dispatch.

``HookDispatcher.trigger`` runs every enabled rule bound to an event, in
configuration order, and reports one :class:`HookExecutionResult` per rule.
Rule failures are logged and reported, never raised to the caller. With an
execution repository configured every result is also kept as history.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..capability_client.adapters.base import CapabilityCaller
from ..capability_client.adapters.notifier import NotifierAdapter
from ..repos.interfaces import HookExecutionRepository
from .models import HookActionType, HookExecutionResult, HookExecutionStatus, HookRule, HookRuleSet
from .templates import render_template

logger = logging.getLogger(__name__)


class HookActionError(Exception):
    pass


def default_rules(channel: str = "#transformations", notifier_server: str = "notifier") -> List[HookRule]:
    """Rules used when no hook configuration file exists."""
    return [
        HookRule(
            id="notify-job-started",
            name="Announce transformation start",
            trigger_event="job.started",
            action_type=HookActionType.notify,
            action_config={"channel": channel, "server": notifier_server, "message": "Transformation started: {{name}}"},
        ),
        HookRule(
            id="notify-job-completed",
            name="Announce transformation completion",
            trigger_event="job.completed",
            action_type=HookActionType.notify,
            action_config={
                "channel": channel,
                "server": notifier_server,
                "message": "Transformation completed: {{name}} ({{deployment.repository.url}})",
            },
        ),
        HookRule(
            id="notify-job-failed",
            name="Alert on transformation failure",
            trigger_event="job.failed",
            action_type=HookActionType.notify,
            action_config={
                "channel": channel,
                "server": notifier_server,
                "message": "Transformation failed: {{name}} at {{stage}}: {{error}}",
            },
        ),
        HookRule(
            id="lint-validated-artifacts",
            name="Run a local linter after validation passes",
            trigger_event="stage.validated",
            action_type=HookActionType.shell,
            action_config={"command": "echo validated {{job_id}} score={{validation.score}}", "timeout": 30},
            enabled=False,
        ),
    ]


class HookDispatcher:
    """Runs configured hook rules for lifecycle events.

    Usage guidelines:
    - ``caller`` is the capability registry (or anything routing calls by server
      name); ``capability_call`` and ``notify`` actions go through it.
    - Shell actions only run with ``allow_shell=True``; otherwise they are
      reported as ``skipped``.
    - ``config_path`` enables ``load_rules``/``save_rules`` without arguments and
      persists management changes.
    - ``executions`` records every run, successful or not; recording failures
      are logged and do not affect the hook result.
    """

    def __init__(
        self,
        caller: Optional[CapabilityCaller],
        *,
        rules: Optional[List[HookRule]] = None,
        notifier_server: str = "notifier",
        default_channel: str = "#transformations",
        allow_shell: bool = False,
        shell_timeout: float = 30.0,
        config_path: Optional[str | Path] = None,
        executions: Optional[HookExecutionRepository] = None,
    ) -> None:
        self._caller = caller
        self._rules: List[HookRule] = list(rules) if rules is not None else []
        self._notifier_server = notifier_server
        self._default_channel = default_channel
        self._allow_shell = allow_shell
        self._shell_timeout = shell_timeout
        self._config_path = Path(config_path) if config_path else None
        self._executions = executions

    # ------------------------------------------------------------------
    # Configuration management
    # ------------------------------------------------------------------

    def load_rules(self, path: Optional[str | Path] = None) -> List[HookRule]:
        """Load rules from JSON; missing files fall back to :func:`default_rules`."""
        target = Path(path) if path else self._config_path
        if target is None or not target.exists():
            logger.warning("HookDispatcher: no hook configuration at %s, using defaults", target)
            self._rules = default_rules(self._default_channel, self._notifier_server)
            return self.list_rules()
        data = json.loads(target.read_text(encoding="utf-8"))
        self._rules = list(HookRuleSet.model_validate(data).hooks)
        logger.info("HookDispatcher: loaded %s hook rule(s) from %s", len(self._rules), target)
        return self.list_rules()

    def save_rules(self, path: Optional[str | Path] = None) -> None:
        target = Path(path) if path else self._config_path
        if target is None:
            return
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = HookRuleSet(hooks=self._rules).model_dump(mode="json")
        target.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def list_rules(self) -> List[HookRule]:
        return [r.model_copy() for r in self._rules]

    def get_rule(self, rule_id: str) -> Optional[HookRule]:
        for r in self._rules:
            if r.id == rule_id:
                return r.model_copy()
        return None

    def upsert_rule(self, rule: HookRule) -> None:
        for i, existing in enumerate(self._rules):
            if existing.id == rule.id:
                self._rules[i] = rule
                break
        else:
            self._rules.append(rule)
        self.save_rules()

    def delete_rule(self, rule_id: str) -> bool:
        before = len(self._rules)
        self._rules = [r for r in self._rules if r.id != rule_id]
        removed = len(self._rules) != before
        if removed:
            self.save_rules()
        return removed

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def trigger(self, event_name: str, context: Dict[str, Any]) -> List[HookExecutionResult]:
        matching = [r for r in self._rules if r.enabled and r.trigger_event == event_name]
        if not matching:
            logger.debug("HookDispatcher: no enabled hooks for %s", event_name)
            return []
        logger.info("HookDispatcher: triggering %s hook(s) for %s", len(matching), event_name)
        results: List[HookExecutionResult] = []
        for rule in matching:
            result = await self._execute(rule, context)
            await self._record(result)
            results.append(result)
        return results

    async def _record(self, result: HookExecutionResult) -> None:
        if self._executions is None:
            return
        try:
            await self._executions.append(result)
        except Exception:
            logger.exception("HookDispatcher: could not record execution of hook %s", result.hook_id)

    async def list_executions(
        self, *, job_id: Optional[str] = None, hook_id: Optional[str] = None, limit: int = 100
    ) -> List[HookExecutionResult]:
        if self._executions is None:
            return []
        return await self._executions.list(job_id=job_id, hook_id=hook_id, limit=limit)

    async def _execute(self, rule: HookRule, context: Dict[str, Any]) -> HookExecutionResult:
        started = time.perf_counter()
        status = HookExecutionStatus.completed
        output: Any = None
        error: Optional[str] = None
        try:
            if rule.action_type is HookActionType.capability_call:
                output = await self._run_capability_call(render_template(rule.action_config, context))
            elif rule.action_type is HookActionType.notify:
                output = await self._run_notify(render_template(rule.action_config, context))
            elif not self._allow_shell:
                status = HookExecutionStatus.skipped
                error = "shell actions are disabled"
            else:
                output = await self._run_shell(rule.action_config, context)
        except Exception as e:
            status = HookExecutionStatus.failed
            error = str(e) or type(e).__name__
            logger.error("HookDispatcher: hook %s (%s) failed: %s", rule.name, rule.id, error)

        duration_ms = (time.perf_counter() - started) * 1000
        if status is HookExecutionStatus.completed:
            logger.info("HookDispatcher: hook %s executed (%.1fms)", rule.name, duration_ms)
        job_id = context.get("job_id")
        return HookExecutionResult(
            job_id=str(job_id) if job_id is not None else None,
            hook_id=rule.id,
            hook_name=rule.name,
            trigger_event=rule.trigger_event,
            status=status,
            duration_ms=duration_ms,
            output=output,
            error=error,
        )

    def _require_caller(self) -> CapabilityCaller:
        if self._caller is None:
            raise HookActionError("no capability caller configured")
        return self._caller

    async def _run_capability_call(self, config: Dict[str, Any]) -> Any:
        server, method = config.get("server"), config.get("method")
        if not server or not method:
            raise HookActionError("capability_call action requires server and method")
        result = await self._require_caller().call(server, method, config.get("params") or {})
        if not result.success:
            raise HookActionError(result.error.message if result.error else f"{server}.{method} failed")
        return result.data

    async def _run_notify(self, config: Dict[str, Any]) -> bool:
        channel, message = config.get("channel"), config.get("message")
        if not channel or not message:
            raise HookActionError("notify action requires channel and message")
        notifier = NotifierAdapter(self._require_caller(), config.get("server") or self._notifier_server)
        if not await notifier.post_message(channel, message):
            raise HookActionError(f"notification to {channel} was not delivered")
        return True

    async def _run_shell(self, config: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """Run ``config["command"]`` without a shell.

        The command template is split into arguments before placeholders are
        rendered, so a substituted value always stays a single argument.
        """
        command = config.get("command")
        if not command:
            raise HookActionError("shell action requires command")
        parts = shlex.split(command) if isinstance(command, str) else list(command)
        argv = [str(render_template(part, context)) for part in parts]
        timeout = float(render_template(config.get("timeout"), context) or self._shell_timeout)
        proc = await asyncio.create_subprocess_exec(
            *argv, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise HookActionError(f"command timed out after {timeout}s: {argv[0]}") from None
        if proc.returncode != 0:
            raise HookActionError(
                f"command exited with {proc.returncode}: {stderr.decode('utf-8', 'replace').strip()[:500]}"
            )
        return {"returncode": proc.returncode, "stdout": stdout.decode("utf-8", "replace")}
