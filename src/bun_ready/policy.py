"""Policy engine: user rules that remap or suppress findings, plus thresholds."""

from __future__ import annotations

import logging

from bun_ready.models import (
    WILDCARD,
    AppliedPolicyRule,
    BaselineMetrics,
    Finding,
    PackageAnalysis,
    PolicyAction,
    PolicyConfig,
    PolicyRule,
    PolicySummary,
    PolicyThresholds,
    Severity,
    SeverityChange,
)

logger = logging.getLogger("bun_ready.policy")

ACTIONS = {a.value for a in PolicyAction}
SEVERITY_CHANGES = {c.value for c in SeverityChange}


def apply_severity_change(severity: Severity, change: SeverityChange) -> Severity:
    if change is SeverityChange.UPGRADE:
        return severity.upgrade()
    if change is SeverityChange.DOWNGRADE:
        return severity.downgrade()
    return severity


def parse_rule(arg: str) -> PolicyRule | None:
    """Parse one ``--rule`` value.

    Accepted forms::

        id=action
        id:severityChange
        id=action:severityChange

    Returns None for anything else.
    """
    if "=" in arg:
        rule_id, _, rest = arg.partition("=")
    else:
        rule_id, _, rest = arg.partition(":")
    rule_id = rule_id.strip()
    rest = rest.strip()
    if not rule_id or not rest:
        return None

    if ":" in rest:
        action, _, change = (p.strip() for p in rest.partition(":"))
        if action in ACTIONS and change in SEVERITY_CHANGES:
            return PolicyRule(
                id=rule_id,
                action=PolicyAction(action),
                severity_change=SeverityChange(change),
            )
        return None

    if rest in ACTIONS:
        return PolicyRule(id=rule_id, action=PolicyAction(rest))
    if rest in SEVERITY_CHANGES:
        return PolicyRule(id=rule_id, severity_change=SeverityChange(rest))
    return None


def parse_rule_args(rule_args: list[str]) -> list[PolicyRule]:
    """Parse repeated ``--rule`` values, silently dropping malformed ones."""
    rules: list[PolicyRule] = []
    for arg in rule_args:
        rule = parse_rule(arg)
        if rule is None:
            logger.debug("Ignoring unparseable rule %r", arg)
            continue
        rules.append(rule)
    return rules


def policy_from_cli(
    rules: list[str] | None = None,
    max_warnings: int | None = None,
    max_packages_red: int | None = None,
    max_packages_yellow: int | None = None,
    fail_on: Severity | None = None,
) -> PolicyConfig:
    """Build a PolicyConfig from CLI flag values."""
    thresholds = PolicyThresholds(
        max_warnings=max_warnings,
        max_packages_red=max_packages_red,
        max_packages_yellow=max_packages_yellow,
    )
    return PolicyConfig(
        rules=parse_rule_args(rules or []),
        thresholds=None if thresholds.is_empty() else thresholds,
        fail_on=fail_on,
    )


def merge_policy_configs(
    cli: PolicyConfig | None, config: PolicyConfig | None
) -> PolicyConfig:
    """Merge CLI policy over config-file policy.

    ``rules`` and ``thresholds`` are taken wholesale from whichever side
    supplies a non-empty value, CLI first. ``fail_on`` is a scalar and the
    CLI value wins when set.
    """
    cli = cli or PolicyConfig()
    config = config or PolicyConfig()

    rules = cli.rules if cli.rules else config.rules
    if cli.thresholds is not None and not cli.thresholds.is_empty():
        thresholds = cli.thresholds
    elif config.thresholds is not None and not config.thresholds.is_empty():
        thresholds = config.thresholds
    else:
        thresholds = None

    return PolicyConfig(
        rules=list(rules),
        thresholds=thresholds,
        fail_on=cli.fail_on or config.fail_on,
    )


def find_matching_rule(finding_id: str, rules: list[PolicyRule]) -> PolicyRule | None:
    """First exact-id rule, else the first wildcard rule."""
    for rule in rules:
        if rule.id == finding_id:
            return rule
    for rule in rules:
        if rule.id == WILDCARD:
            return rule
    return None


def _resolve_severity(original: Severity, rule: PolicyRule) -> Severity:
    # Action first, then the relative change on top of it.
    severity = original
    if rule.action is PolicyAction.FAIL:
        severity = Severity.RED
    elif rule.action is PolicyAction.WARN:
        severity = Severity.YELLOW
    if rule.severity_change is not None:
        severity = apply_severity_change(severity, rule.severity_change)
    return severity


def apply_policy(
    findings: list[Finding],
    policy: PolicyConfig,
    metrics: BaselineMetrics | None = None,
) -> tuple[list[Finding], PolicySummary]:
    """Apply ``policy.rules`` to ``findings``.

    Returns the surviving findings in input order (copies where the severity
    was touched) and a summary whose ``rules`` log follows finding order.
    Package-count thresholds breached by ``metrics`` are counted in
    ``rules_applied``.
    """
    modified: list[Finding] = []
    applied_rules: list[AppliedPolicyRule] = []
    summary = PolicySummary()

    for finding in findings:
        rule = find_matching_rule(finding.id, policy.rules)
        if rule is None:
            modified.append(finding)
            continue

        applied = AppliedPolicyRule(
            finding_id=finding.id,
            action=rule.action,
            severity_change=rule.severity_change,
            original_severity=finding.severity,
            reason=rule.reason,
        )

        if rule.action is not None and rule.action.suppresses:
            summary.findings_disabled += 1
            applied_rules.append(applied)
            continue

        new_severity = _resolve_severity(finding.severity, rule)
        if rule.action is not None or rule.severity_change is not None:
            summary.findings_modified += 1
        if new_severity > finding.severity:
            summary.severity_upgraded += 1
        elif new_severity < finding.severity:
            summary.severity_downgraded += 1

        applied.new_severity = new_severity
        applied_rules.append(applied)
        modified.append(finding.model_copy(update={"severity": new_severity}))

    summary.rules = applied_rules
    summary.rules_applied = len(applied_rules)
    if policy.thresholds is not None and metrics is not None:
        summary.rules_applied += len(
            package_threshold_breaches(policy.thresholds, metrics)
        )

    return modified, summary


def package_threshold_breaches(
    thresholds: PolicyThresholds, metrics: BaselineMetrics
) -> list[str]:
    reasons: list[str] = []
    if (
        thresholds.max_packages_red is not None
        and metrics.packages_red > thresholds.max_packages_red
    ):
        reasons.append(
            f"Too many red packages ({metrics.packages_red} > {thresholds.max_packages_red})"
        )
    if (
        thresholds.max_packages_yellow is not None
        and metrics.packages_yellow > thresholds.max_packages_yellow
    ):
        reasons.append(
            f"Too many yellow packages "
            f"({metrics.packages_yellow} > {thresholds.max_packages_yellow})"
        )
    return reasons


def check_thresholds(
    findings: list[Finding],
    thresholds: PolicyThresholds | None,
    packages: list[PackageAnalysis] | None = None,
) -> tuple[Severity, list[str]]:
    """Evaluate numeric gates independently of finding severities.

    Returns ``(verdict, reasons)``; the verdict is yellow when any gate is
    exceeded and green otherwise.
    """
    if thresholds is None:
        return Severity.GREEN, []

    reasons: list[str] = []
    yellow_count = sum(1 for f in findings if f.severity is Severity.YELLOW)
    if thresholds.max_warnings is not None and yellow_count > thresholds.max_warnings:
        reasons.append(f"Too many warnings ({yellow_count} > {thresholds.max_warnings})")

    packages = packages or []
    metrics = BaselineMetrics(
        packages_red=sum(1 for p in packages if p.severity is Severity.RED),
        packages_yellow=sum(1 for p in packages if p.severity is Severity.YELLOW),
    )
    reasons.extend(package_threshold_breaches(thresholds, metrics))

    verdict = Severity.YELLOW if reasons else Severity.GREEN
    return verdict, reasons
