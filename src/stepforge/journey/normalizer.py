"""
Journey normalizer - compiles a parsed journey into an IRJourney.

Acceptance criteria are compiled strictly in document order: blocked
counts, warnings and strict-mode filtering accumulate as the walk
proceeds. Each bullet goes through the StepMapper; failures become
``blocked`` primitives and ``BlockedStep`` records, never exceptions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from ..core.ir import (
    CompletionSignal,
    CompletionType,
    ElementState,
    ExpectHidden,
    ExpectTitle,
    ExpectToast,
    ExpectURL,
    ExpectVisible,
    IRJourney,
    IRPrimitive,
    IRStep,
    JourneyDataConfig,
    LocatorSpec,
    LocatorStrategy,
    ModuleDependencies,
    ToastType,
    WaitForResponse,
)
from ..mapping.step_mapper import StepMapper
from .parser import AcceptanceCriterion, ParsedJourney, ProceduralStep

logger = logging.getLogger(__name__)

# Escapes the characters special to the renderer's regex dialect, "/" included
_REGEX_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\/]")


@dataclass(frozen=True)
class BlockedStep:
    step_id: str
    source_text: str
    reason: str


@dataclass
class NormalizeStats:
    total_steps: int = 0
    mapped_steps: int = 0
    blocked_steps: int = 0
    total_actions: int = 0
    total_assertions: int = 0


@dataclass
class NormalizeResult:
    journey: IRJourney
    blocked_steps: list[BlockedStep] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    stats: NormalizeStats = field(default_factory=NormalizeStats)
    dropped_steps: list[str] = field(default_factory=list)


@dataclass
class CodegenReadiness:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class _CompiledStep:
    step: IRStep
    blocked: list[BlockedStep]


def escape_regex(text: str) -> str:
    return _REGEX_SPECIALS.sub(lambda m: "\\" + m.group(0), text)


def build_tags(parsed: ParsedJourney) -> list[str]:
    """Standard journey tags followed by the header's own, de-duplicated in order."""
    header = parsed.header
    tags = [
        "@artk",
        "@journey",
        f"@{header.id}",
        f"@tier-{header.tier}",
        f"@scope-{header.scope}",
        f"@actor-{header.actor}",
    ]
    for tag in header.tags or []:
        tags.append(tag if tag.startswith("@") else f"@{tag}")
    return list(dict.fromkeys(tags))


def _compile_criterion(
    criterion: AcceptanceCriterion,
    procedural: list[ProceduralStep],
    mapper: StepMapper,
    journey_id: str,
    warnings: list[str],
) -> _CompiledStep:
    actions: list[IRPrimitive] = []
    assertions: list[IRPrimitive] = []
    blocked: list[BlockedStep] = []

    for text in criterion.steps:
        result = mapper.map_step(text, journey_id=journey_id, step_id=criterion.id)
        warnings.extend(f"{criterion.id}: {w}" for w in result.warnings)
        if result.blocked:
            blocked.append(
                BlockedStep(
                    step_id=criterion.id,
                    source_text=text,
                    reason=result.message or "Could not map step",
                )
            )
            warnings.append(result.message or f'Could not map step: "{text}"')
            actions.append(result.primitive)
        elif result.is_assertion:
            assertions.append(result.primitive)
        else:
            actions.append(result.primitive)

    # Linked procedural steps add to the criterion; ones that fail only warn
    for ps in procedural:
        if ps.linked_ac != criterion.id or ps.text in criterion.steps:
            continue
        result = mapper.map_step(ps.text, journey_id=journey_id, step_id=criterion.id)
        if result.blocked:
            warnings.append(f"{criterion.id}: linked procedural step {ps.number} not mapped: {ps.text}")
        elif result.is_assertion:
            assertions.append(result.primitive)
        else:
            actions.append(result.primitive)

    notes = [f"TODO: Add assertion for: {criterion.title}"] if not assertions and criterion.title else []
    step = IRStep(
        id=criterion.id,
        description=criterion.title or f"Step {criterion.id}",
        actions=actions,
        assertions=assertions,
        source_text=criterion.raw_content or None,
        notes=notes,
    )
    return _CompiledStep(step=step, blocked=blocked)


def _compile_procedural(
    ps: ProceduralStep,
    mapper: StepMapper,
    journey_id: str,
    warnings: list[str],
) -> _CompiledStep:
    step_id = f"PS-{ps.number}"
    result = mapper.map_step(ps.text, journey_id=journey_id, step_id=step_id)
    warnings.extend(f"{step_id}: {w}" for w in result.warnings)
    actions: list[IRPrimitive] = []
    assertions: list[IRPrimitive] = []
    blocked: list[BlockedStep] = []

    if result.blocked:
        reason = result.message or "Could not map procedural step"
        blocked.append(BlockedStep(step_id=step_id, source_text=ps.text, reason=reason))
        warnings.append(reason)
        actions.append(result.primitive)
    elif result.is_assertion:
        assertions.append(result.primitive)
    else:
        actions.append(result.primitive)

    step = IRStep(id=step_id, description=ps.text, actions=actions, assertions=assertions)
    return _CompiledStep(step=step, blocked=blocked)


def normalize_journey(
    parsed: ParsedJourney,
    *,
    mapper: StepMapper | None = None,
    include_blocked: bool = True,
    strict: bool = False,
) -> NormalizeResult:
    """Compile a parsed journey into IR.

    Args:
        parsed: Output of ``parse_journey``.
        mapper: Step mapper; a default one (no learned pattern store) if omitted.
        include_blocked: Keep criteria that contain ``blocked`` primitives.
            When False such criteria are left out whole; their blocked
            steps are still reported in ``blocked_steps``.
        strict: Drop every criterion containing a blocked step.
    """
    mapper = mapper or StepMapper()
    header = parsed.header
    warnings: list[str] = []
    blocked_steps: list[BlockedStep] = []
    dropped: list[str] = []
    steps: list[IRStep] = []

    for criterion in parsed.acceptance_criteria:
        compiled = _compile_criterion(
            criterion, parsed.procedural_steps, mapper, header.id, warnings
        )
        blocked_steps.extend(compiled.blocked)
        if compiled.blocked and (strict or not include_blocked):
            dropped.append(criterion.id)
            reason = "dropped in strict mode" if strict else "omitted"
            warnings.append(f"{criterion.id} {reason}: {len(compiled.blocked)} blocked step(s)")
            continue
        steps.append(compiled.step)

    if not parsed.acceptance_criteria:
        for ps in parsed.procedural_steps:
            compiled = _compile_procedural(ps, mapper, header.id, warnings)
            blocked_steps.extend(compiled.blocked)
            if compiled.blocked and (strict or not include_blocked):
                dropped.append(compiled.step.id)
                reason = "dropped in strict mode" if strict else "omitted"
                warnings.append(f"{compiled.step.id} {reason}")
                continue
            steps.append(compiled.step)

    journey = IRJourney(
        id=header.id,
        title=header.title,
        tier=header.tier,
        scope=header.scope,
        actor=header.actor,
        tags=build_tags(parsed),
        module_dependencies=ModuleDependencies(
            foundation=list(header.modules.foundation),
            feature=list(header.modules.features),
        ),
        data=(
            JourneyDataConfig(strategy=header.data.strategy, cleanup=header.data.cleanup)
            if header.data
            else None
        ),
        completion=list(header.completion or []),
        steps=steps,
        revision=header.revision,
        source_path=parsed.source_path,
        prerequisites=list(header.prerequisites or []),
        negative_paths=list(header.negative_paths or []),
        test_data=list(header.test_data or []),
        visual_regression=header.visual_regression,
        accessibility=header.accessibility,
        performance=header.performance,
    )

    stats = NormalizeStats(
        total_steps=len(parsed.acceptance_criteria) or len(parsed.procedural_steps),
        mapped_steps=len(steps),
        blocked_steps=len(blocked_steps),
        total_actions=sum(len(s.actions) for s in steps),
        total_assertions=sum(len(s.assertions) for s in steps),
    )
    logger.info(
        f"Normalized {header.id}: {stats.mapped_steps} steps, "
        f"{stats.blocked_steps} blocked, {len(dropped)} dropped"
    )
    return NormalizeResult(
        journey=journey,
        blocked_steps=blocked_steps,
        warnings=warnings,
        stats=stats,
        dropped_steps=dropped,
    )


# =============================================================================
# Completion signals
# =============================================================================


def locator_from_selector(selector: str) -> LocatorSpec:
    """Read a Playwright-style selector string into a locator."""
    if "data-testid" in selector:
        match = re.search(r"""\[data-testid=['"]([^'"]+)['"]\]""", selector)
        if match:
            return LocatorSpec(strategy=LocatorStrategy.TESTID, value=match.group(1))
    for prefix, strategy in (
        ("role=", LocatorStrategy.ROLE),
        ("text=", LocatorStrategy.TEXT),
        ("label=", LocatorStrategy.LABEL),
        ("placeholder=", LocatorStrategy.PLACEHOLDER),
    ):
        if selector.startswith(prefix):
            return LocatorSpec(strategy=strategy, value=selector[len(prefix) :])
    return LocatorSpec(strategy=LocatorStrategy.CSS, value=selector)


def _toast_type_from_message(message: str) -> ToastType:
    lower = message.lower()
    if "error" in lower:
        return ToastType.ERROR
    if "warning" in lower:
        return ToastType.WARNING
    if "info" in lower:
        return ToastType.INFO
    return ToastType.SUCCESS


def completion_signal_to_assertion(signal: CompletionSignal) -> IRPrimitive:
    options = signal.options
    exact = bool(options and options.exact)

    if signal.type == CompletionType.URL:
        if exact:
            return ExpectURL(pattern=signal.value)
        return ExpectURL(pattern=escape_regex(signal.value), regex=True)
    if signal.type == CompletionType.TITLE:
        if exact:
            return ExpectTitle(title=signal.value)
        return ExpectTitle(title=escape_regex(signal.value), regex=True)
    if signal.type == CompletionType.TOAST:
        return ExpectToast(toast_type=_toast_type_from_message(signal.value), message=signal.value)
    if signal.type == CompletionType.ELEMENT:
        locator = locator_from_selector(signal.value)
        timeout = options.timeout if options else None
        state = options.state if options else None
        if state in (ElementState.HIDDEN, ElementState.DETACHED):
            return ExpectHidden(locator=locator, timeout=timeout)
        return ExpectVisible(locator=locator, timeout=timeout)
    if signal.type == CompletionType.TEXT:
        return ExpectVisible(
            locator=LocatorSpec(strategy=LocatorStrategy.TEXT, value=signal.value),
            timeout=options.timeout if options else None,
        )
    return WaitForResponse(url_pattern=signal.value)


def completion_signals_to_assertions(signals: list[CompletionSignal]) -> list[IRPrimitive]:
    """Final assertions proving the journey reached its end state."""
    return [completion_signal_to_assertion(s) for s in signals]


# =============================================================================
# Readiness
# =============================================================================


def validate_journey_for_codegen(result: NormalizeResult) -> CodegenReadiness:
    """Check whether a normalized journey is worth generating code for."""
    journey = result.journey
    errors: list[str] = []
    warnings: list[str] = []

    if not journey.steps:
        errors.append("Journey has no steps")
    if not journey.completion:
        errors.append("Journey has no completion signals")
    if result.stats.blocked_steps > result.stats.mapped_steps:
        errors.append(
            f"Too many blocked steps: {result.stats.blocked_steps} blocked "
            f"vs {result.stats.mapped_steps} mapped"
        )
    if result.stats.total_assertions == 0:
        errors.append("Journey has no assertions")

    for step in journey.steps:
        if any(p.type == "blocked" for p in step.actions):
            warnings.append(f"{step.id} contains blocked steps")
        if not step.assertions:
            warnings.append(f"{step.id} has no assertions")

    return CodegenReadiness(valid=not errors, errors=errors, warnings=warnings)
