"""
Action Step Assembler

Orders each strategy's action steps by phase, then execution timing, then
the explicit sort order.
"""

from typing import Dict, Iterable, List

from ..reference_data.models import ActionPhase, ActionStep, ExecutionTiming, Strategy

PHASE_RANK = {
    ActionPhase.IMMEDIATE: 0,
    ActionPhase.SHORT_TERM: 1,
    ActionPhase.MEDIUM_TERM: 2,
    ActionPhase.LONG_TERM: 3,
}

TIMING_RANK = {
    ExecutionTiming.BEFORE_CRISIS: 0,
    ExecutionTiming.DURING_CRISIS: 1,
    ExecutionTiming.AFTER_CRISIS: 2,
}


def step_sort_key(step: ActionStep):
    return (PHASE_RANK[step.phase], TIMING_RANK[step.execution_timing], step.sort_order)


def order_action_steps(steps: Iterable[ActionStep]) -> List[ActionStep]:
    """Stable three-key sort; steps with equal keys keep their input order"""
    return sorted(steps, key=step_sort_key)


def assemble_action_plan(strategies: Iterable[Strategy]) -> Dict[str, List[ActionStep]]:
    """Ordered steps for every strategy, keyed by strategy id"""
    return {s.strategy_id: order_action_steps(s.action_steps) for s in strategies}
