"""
TeamMate Formation Solver
=========================

Multi-phase greedy team formation with local-search repair.

Phases:
1. Leader placement     - round-robin, at most one Leader per team
2. Thinker placement    - round-robin, one (then at most two) Thinkers per team
3. Role-diversity fill  - remaining participants grouped by role, best-fit team
4. Balanced-type fill   - remaining Balanced participants, best-fit team
5. Remainder fill       - anyone still unassigned, best-fit team
Phases 3-5 run concurrently on a small worker pool; every placement is an
atomic check-and-add under one lock.

Post-processing:
- Skill balancing: one swap per (high, low) team pair that strictly reduces
  the teams' distance from the global average skill
- Role repair: one swap per team short of min(3, capacity) distinct roles

Leaders are never moved by post-processing, and a swap is refused if it would
push a team out of the 1-2 Thinker band it was in.

Author: TeamMate Formation System
"""

import argparse
import logging
import os
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from teammate_data import load_participants, save_teams, teams_to_frame
from teammate_model import (
    AllocationError,
    AllocationTimeoutError,
    FileProcessingError,
    InvalidInputError,
    Participant,
    Role,
    Team,
    TraitType,
    validate_team_size,
)

logger = logging.getLogger(__name__)


# Fit score weights
BASE_SCORE = 100
GROUP_PENALTY = 50
ROLE_BONUS = 30
LEADER_BONUS = 40
TRAIT_BONUS = 20
SKILL_WEIGHT = 5

Swap = Tuple[str, str, str, str]


class OrderingStrategy(Enum):
    DETERMINISTIC = 'deterministic'
    SHUFFLED = 'shuffled'

    @classmethod
    def from_string(cls, text: str) -> 'OrderingStrategy':
        for strategy in cls:
            if strategy.value == str(text).strip().lower():
                return strategy
        raise InvalidInputError(f"Unknown ordering strategy: {text}")


# =============================================================================
# Ordering
# =============================================================================

def order_participants(participants: List[Participant],
                       strategy: OrderingStrategy = OrderingStrategy.DETERMINISTIC,
                       rng: Optional[np.random.Generator] = None) -> List[Participant]:
    """
    Produce the working order the allocation phases iterate in.

    DETERMINISTIC sorts Leaders first, then Balanced, then Thinkers, highest
    skill first within each type. SHUFFLED shuffles and then sorts by skill
    only, so equal-skill participants land in random order.
    """
    ordered = list(participants)
    if strategy == OrderingStrategy.DETERMINISTIC:
        ordered.sort(key=lambda p: (p.trait_type.rank, -p.skill_level))
    else:
        rng = rng if rng is not None else np.random.default_rng()
        ordered = [ordered[i] for i in rng.permutation(len(ordered))]
        ordered.sort(key=lambda p: -p.skill_level)
    return ordered


# =============================================================================
# Fit scoring
# =============================================================================

def fit_score(team: Team, participant: Participant, global_average_skill: float,
              max_same_group: int = 2, jitter: int = 0) -> int:
    """
    Score how well a participant fits a team; higher is better.

    Args:
        team: Candidate team (must not be full)
        participant: Participant being placed
        global_average_skill: Mean skill over the whole pool
        max_same_group: Members sharing a preferred group before the penalty applies
        jitter: Small tie-breaking offset added to the score

    Returns:
        Integer fit score
    """
    score = BASE_SCORE

    if team.group_count(participant.preferred_group) >= max_same_group:
        score -= GROUP_PENALTY

    if team.role_count(participant.role) == 0:
        score += ROLE_BONUS

    trait = participant.trait_type
    trait_count = team.trait_count(trait)
    if trait == TraitType.LEADER:
        if trait_count == 0:
            score += LEADER_BONUS
    elif trait_count < max(1.0, team.size / 3.0):
        score += TRAIT_BONUS

    # Reward moving the team average towards the global average
    if team.size > 0:
        current_distance = abs(team.average_skill - global_average_skill)
        new_average = (team.average_skill * team.size + participant.skill_level) / (team.size + 1)
        new_distance = abs(new_average - global_average_skill)
        score += int(round((current_distance - new_distance) * SKILL_WEIGHT))

    return score + jitter


def select_best_team(teams: List[Team], participant: Participant, global_average_skill: float,
                     max_same_group: int = 2,
                     jitter_fn: Optional[Callable[[], int]] = None) -> Optional[Team]:
    """Return the highest-scoring non-full team, first found on ties, or None."""
    best_team = None
    best_score = None
    for team in teams:
        if team.is_full():
            continue
        jitter = jitter_fn() if jitter_fn else 0
        score = fit_score(team, participant, global_average_skill, max_same_group, jitter)
        if best_score is None or score > best_score:
            best_score = score
            best_team = team
    return best_team


# =============================================================================
# Post-allocation passes
# =============================================================================

def skill_imbalance(teams: List[Team], global_average: Optional[float] = None) -> float:
    """Sum of each team's distance from the mean of team average skills."""
    if not teams:
        return 0.0
    averages = np.array([t.average_skill for t in teams], dtype=float)
    if global_average is None:
        global_average = float(averages.mean())
    return float(np.abs(averages - global_average).sum())


def _keeps_thinker_band(team: Team, leaving: Participant, joining: Participant) -> bool:
    before = team.trait_count(TraitType.THINKER)
    after = (before
             - (leaving.trait_type == TraitType.THINKER)
             + (joining.trait_type == TraitType.THINKER))
    if 1 <= before <= 2:
        return 1 <= after <= 2
    return True


def _swap_members(team_a: Team, member_a: Participant, team_b: Team, member_b: Participant):
    team_a.remove_member(member_a)
    team_b.remove_member(member_b)
    team_a.add_member(member_b)
    team_b.add_member(member_a)


def balance_team_skills(teams: List[Team], threshold: float = 1.5) -> List[Swap]:
    """
    Swap one pair of members between each high-skill and low-skill team.

    A team is high (low) when its average skill is more than `threshold`
    above (below) the mean of all team averages. For every (high, low) pair
    the first non-Leader pair whose exchange strictly lowers
    |high_avg - mean| + |low_avg - mean| is swapped. Single pass, never raises.

    Returns:
        List of (high_team_id, high_member_id, low_team_id, low_member_id)
    """
    if len(teams) < 2:
        return []

    global_average = float(np.mean([t.average_skill for t in teams]))
    high_teams = [t for t in teams if t.average_skill > global_average + threshold]
    low_teams = [t for t in teams if t.average_skill < global_average - threshold]

    swaps = []
    for high in high_teams:
        for low in low_teams:
            current = abs(high.average_skill - global_average) + abs(low.average_skill - global_average)
            high_total = high.average_skill * high.size
            low_total = low.average_skill * low.size

            for p_high in high.members:
                if p_high.trait_type == TraitType.LEADER:
                    continue
                swapped = False
                for p_low in low.members:
                    if p_low.trait_type == TraitType.LEADER:
                        continue
                    delta = p_low.skill_level - p_high.skill_level
                    new_high = (high_total + delta) / high.size
                    new_low = (low_total - delta) / low.size
                    proposed = abs(new_high - global_average) + abs(new_low - global_average)
                    if proposed >= current:
                        continue
                    if not (_keeps_thinker_band(high, p_high, p_low)
                            and _keeps_thinker_band(low, p_low, p_high)):
                        continue
                    _swap_members(high, p_high, low, p_low)
                    swaps.append((high.team_id, p_high.id, low.team_id, p_low.id))
                    swapped = True
                    break
                if swapped:
                    break
    return swaps


def _find_role_swap(team: Team, donor: Team,
                    min_role_diversity: int) -> Optional[Tuple[Participant, Participant]]:
    present = team.distinct_roles()
    donor_needed = min(min_role_diversity, donor.capacity)
    donor_was_diverse = len(donor.distinct_roles()) >= donor_needed

    for incoming in donor.members:
        if incoming.trait_type == TraitType.LEADER or incoming.role in present:
            continue
        for outgoing in team.members:
            if outgoing.trait_type == TraitType.LEADER:
                continue
            # Only give up a duplicated role, so the team strictly gains one
            if team.role_count(outgoing.role) < 2:
                continue
            if not (_keeps_thinker_band(team, outgoing, incoming)
                    and _keeps_thinker_band(donor, incoming, outgoing)):
                continue
            if donor_was_diverse:
                donor_roles = [p.role for p in donor.members if p is not incoming] + [outgoing.role]
                if len(set(donor_roles)) < donor_needed:
                    continue
            return outgoing, incoming
    return None


def repair_role_diversity(teams: List[Team], min_role_diversity: int = 3) -> List[Swap]:
    """
    Give each role-deficient team one chance to swap in a missing role.

    The swap partner is always the first other team in the list; if it has
    no eligible member the team is left as is.

    Returns:
        List of (team_id, outgoing_id, donor_team_id, incoming_id)
    """
    swaps = []
    if len(teams) < 2:
        return swaps

    for team in teams:
        if len(team.distinct_roles()) >= min(min_role_diversity, team.capacity):
            continue
        donor = next(t for t in teams if t is not team)
        pair = _find_role_swap(team, donor, min_role_diversity)
        if pair is None:
            continue
        outgoing, incoming = pair
        _swap_members(team, outgoing, donor, incoming)
        swaps.append((team.team_id, outgoing.id, donor.team_id, incoming.id))
    return swaps


# =============================================================================
# Allocation run
# =============================================================================

class _AllocationRun:
    """State of one allocation: teams, assignment map and the lock guarding both."""

    def __init__(self, participants: List[Participant], team_size: int,
                 rng: np.random.Generator, use_jitter: bool, max_same_group: int, jitter: int):
        self.participants = participants
        self.team_size = team_size
        self.rng = rng
        self.use_jitter = use_jitter
        self.max_same_group = max_same_group
        self.jitter = jitter

        num_teams = len(participants) // team_size
        self.teams = [Team(f"TEAM_{i + 1}", team_size) for i in range(num_teams)]
        self.assignments: Dict[str, str] = {}
        self.global_average_skill = float(np.mean([p.skill_level for p in participants]))

        self.lock = threading.RLock()
        self.cancelled = threading.Event()

    def is_assigned(self, participant: Participant) -> bool:
        with self.lock:
            return participant.id in self.assignments

    def unassigned(self, predicate: Callable[[Participant], bool] = None) -> List[Participant]:
        with self.lock:
            return [p for p in self.participants
                    if p.id not in self.assignments and (predicate is None or predicate(p))]

    def assign(self, participant: Participant, team: Team) -> bool:
        with self.lock:
            if participant.id in self.assignments:
                return False
            if not team.add_member(participant):
                return False
            self.assignments[participant.id] = team.team_id
            return True

    def _draw_jitter(self) -> int:
        return int(self.rng.integers(-self.jitter, self.jitter + 1))

    def place_best(self, participant: Participant) -> bool:
        with self.lock:
            if participant.id in self.assignments:
                return False
            team = select_best_team(self.teams, participant, self.global_average_skill,
                                    self.max_same_group,
                                    self._draw_jitter if self.use_jitter else None)
            if team is None:
                return False
            return self.assign(participant, team)

    def _round_robin(self, candidates: List[Participant], tiers: List[Callable[[Team], bool]],
                     start: int) -> int:
        index = start
        placed = 0
        n = len(self.teams)
        for p in candidates:
            if self.is_assigned(p):
                continue
            for eligible in tiers:
                target = None
                for step in range(n):
                    team = self.teams[(index + step) % n]
                    if not team.is_full() and eligible(team):
                        target = (index + step) % n
                        break
                if target is not None and self.assign(p, self.teams[target]):
                    index = target + 1
                    placed += 1
                    break
        return placed

    def place_leaders(self, ordered: List[Participant], start: int = 0) -> int:
        leaders = [p for p in ordered if p.trait_type == TraitType.LEADER]
        return self._round_robin(
            leaders, [lambda t: t.trait_count(TraitType.LEADER) == 0], start)

    def place_thinkers(self, ordered: List[Participant], start: int = 0) -> int:
        thinkers = [p for p in ordered if p.trait_type == TraitType.THINKER]
        return self._round_robin(
            thinkers,
            [lambda t: t.trait_count(TraitType.THINKER) == 0,
             lambda t: t.trait_count(TraitType.THINKER) < 2],
            start)

    def _place_all(self, candidates: List[Participant]) -> int:
        placed = 0
        for p in candidates:
            if self.cancelled.is_set():
                break
            if self.place_best(p):
                placed += 1
        return placed

    def phase_role_diversity(self) -> int:
        by_role = {role: self.unassigned(lambda p, r=role: p.role == r) for role in Role}
        placed = 0
        for role in Role:
            placed += self._place_all(by_role[role])
        return placed

    def phase_balanced_fill(self) -> int:
        return self._place_all(self.unassigned(lambda p: p.trait_type == TraitType.BALANCED))

    def phase_remainder(self) -> int:
        return self._place_all(self.unassigned())

    def rebuild_assignments(self):
        with self.lock:
            self.assignments = {p.id: t.team_id for t in self.teams for p in t.members}


# =============================================================================
# Solver
# =============================================================================

class TeamMateSolver:
    """
    Greedy multi-phase team formation over a fixed participant pool.
    """

    MIN_TEAM_SIZE = 3
    MAX_TEAM_SIZE = 10
    MAX_SAME_GROUP = 2
    MIN_ROLE_DIVERSITY = 3
    BALANCE_THRESHOLD = 1.5
    DEFAULT_POOL_SIZE = 3
    DEFAULT_TIME_LIMIT = 30
    SHUTDOWN_TIMEOUT = 5
    JITTER = 3

    def __init__(self, participants: List[Participant], verbose: bool = True):
        """
        Initialize the solver with a participant pool.

        Args:
            participants: Participants to allocate; the list is copied
            verbose: Whether to print progress messages
        """
        self.verbose = verbose
        if participants is None:
            raise InvalidInputError("No participants available")
        self.participants = list(participants)

        self.log("=" * 70)
        self.log("TEAMMATE FORMATION SOLVER")
        self.log("=" * 70)
        self.log(f"Loaded {len(self.participants)} participants")
        for trait in TraitType:
            count = sum(1 for p in self.participants if p.trait_type == trait)
            self.log(f"  - {trait.display_name}: {count}")

    @classmethod
    def from_csv(cls, path: str, verbose: bool = True) -> 'TeamMateSolver':
        return cls(load_participants(path), verbose=verbose)

    def log(self, message: str):
        """Print a log message if verbose mode is enabled."""
        logger.info(message)
        if self.verbose:
            timestamp = datetime.now().strftime("%H:%M:%S")
            print(f"[{timestamp}] {message}")

    def _validate(self, team_size: int):
        if not self.participants:
            raise InvalidInputError("No participants available")
        ids = [p.id for p in self.participants]
        if len(set(ids)) != len(ids):
            raise InvalidInputError("Duplicate participant IDs in input")
        validate_team_size(team_size, len(self.participants),
                           self.MIN_TEAM_SIZE, self.MAX_TEAM_SIZE)

    def form_teams(self,
                   team_size: int,
                   ordering: OrderingStrategy = OrderingStrategy.DETERMINISTIC,
                   seed: Optional[int] = None,
                   pool_size: int = DEFAULT_POOL_SIZE,
                   time_limit_seconds: float = DEFAULT_TIME_LIMIT,
                   use_jitter: Optional[bool] = None,
                   max_same_group: int = MAX_SAME_GROUP,
                   balance_threshold: float = BALANCE_THRESHOLD) -> List[Team]:
        """
        Allocate the pool into floor(n / team_size) full teams.

        Args:
            team_size: Members per team (3-10)
            ordering: Pre-sort policy for the participant pool
            seed: Seed for shuffling, start offsets and jitter
            pool_size: Worker threads for phases 3-5
            time_limit_seconds: Bound on the whole run
            use_jitter: Random tie-breaking in fit scores (default: only when shuffled)
            max_same_group: Same-group members tolerated before the fit penalty
            balance_threshold: Distance from the mean skill that marks a team for balancing

        Returns:
            Teams TEAM_1..TEAM_k, each holding exactly team_size members

        Raises:
            InvalidInputError: preconditions not met
            AllocationError: a placement phase failed
            AllocationTimeoutError: the run exceeded time_limit_seconds
        """
        if isinstance(ordering, str):
            ordering = OrderingStrategy.from_string(ordering)
        self._validate(team_size)
        if pool_size < 1:
            raise InvalidInputError("Worker pool size must be at least 1")

        deadline = time.monotonic() + time_limit_seconds
        rng = np.random.default_rng(seed)
        if use_jitter is None:
            use_jitter = ordering == OrderingStrategy.SHUFFLED

        self.log("")
        self.log(f"Forming teams of {team_size} ({ordering.value} ordering)")

        ordered = order_participants(self.participants, ordering, rng)
        run = _AllocationRun(ordered, team_size, rng, use_jitter, max_same_group, self.JITTER)
        num_teams = len(run.teams)
        self.log(f"Creating {num_teams} teams; {len(ordered) - num_teams * team_size} participants will sit out")

        if ordering == OrderingStrategy.SHUFFLED:
            leader_start = int(rng.integers(0, num_teams))
            thinker_start = int(rng.integers(0, num_teams))
        else:
            leader_start = thinker_start = 0

        placed = run.place_leaders(ordered, leader_start)
        self.log(f"Phase 1: placed {placed} leaders")
        placed = run.place_thinkers(ordered, thinker_start)
        self.log(f"Phase 2: placed {placed} thinkers")

        self._run_parallel_phases(run, pool_size, deadline)

        underfilled = [t.team_id for t in run.teams if not t.is_full()]
        if underfilled:
            raise AllocationError(f"Teams left under capacity: {', '.join(underfilled)}")

        before = skill_imbalance(run.teams)
        balance_swaps = balance_team_skills(run.teams, balance_threshold)
        self.log(f"Skill balancing: {len(balance_swaps)} swaps "
                 f"(imbalance {before:.2f} -> {skill_imbalance(run.teams):.2f})")

        repair_swaps = repair_role_diversity(run.teams, self.MIN_ROLE_DIVERSITY)
        self.log(f"Role repair: {len(repair_swaps)} swaps")
        run.rebuild_assignments()

        if time.monotonic() > deadline:
            raise AllocationTimeoutError(f"Team formation exceeded {time_limit_seconds}s")

        self.last_run = {
            'ordering': ordering.value,
            'balance_swaps': balance_swaps,
            'repair_swaps': repair_swaps,
            'assignments': dict(run.assignments),
        }
        self.log(f"Team formation completed. Formed {num_teams} teams")
        return run.teams

    def _run_parallel_phases(self, run: _AllocationRun, pool_size: int, deadline: float):
        phases = [
            ('role diversity', run.phase_role_diversity),
            ('balanced fill', run.phase_balanced_fill),
            ('remainder', run.phase_remainder),
        ]
        executor = ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix='teammate-phase')
        try:
            futures = {executor.submit(fn): name for name, fn in phases}
            remaining = max(0.0, deadline - time.monotonic())
            done, pending = wait(futures, timeout=remaining, return_when=FIRST_EXCEPTION)

            for future in done:
                exc = future.exception()
                if exc is not None:
                    run.cancelled.set()
                    raise AllocationError(f"Phase '{futures[future]}' failed: {exc}") from exc
            if pending:
                run.cancelled.set()
                raise AllocationTimeoutError("Team formation timed out during placement phases")

            for future, name in futures.items():
                self.log(f"Phase '{name}': placed {future.result()} participants")
        finally:
            # Running phases see the cancel flag; queued ones are dropped
            executor.shutdown(wait=False, cancel_futures=True)

    def solve(self, team_size: int = 5, **options) -> dict:
        """
        Form teams and package them with statistics and balance checks.

        Args:
            team_size: Members per team
            **options: Passed through to form_teams()

        Returns:
            Solution dictionary with teams, assignments and statistics
        """
        teams = self.form_teams(team_size, **options)
        return self._build_solution(teams)

    def _build_solution(self, teams: List[Team]) -> dict:
        assignments = self.last_run['assignments']
        unassigned = [p for p in self.participants if p.id not in assignments]
        averages = np.array([t.average_skill for t in teams], dtype=float)
        total = len(self.participants)

        violations = {}
        for team in teams:
            problems = team.balance_violations(self.MIN_ROLE_DIVERSITY)
            if problems:
                violations[team.team_id] = problems

        return {
            'status': 'Completed',
            'teams': teams,
            'assignments': assignments,
            'unassigned_participants': unassigned,
            'statistics': {
                'total_participants': total,
                'assigned': len(assignments),
                'unassigned': len(unassigned),
                'assignment_rate': (len(assignments) / total * 100) if total else 0.0,
                'teams_formed': len(teams),
                'balanced_teams': sum(1 for t in teams if t.team_id not in violations),
                'global_average_skill': float(averages.mean()) if len(averages) else 0.0,
                'skill_spread': float(averages.std()) if len(averages) else 0.0,
                'balance_swaps': len(self.last_run['balance_swaps']),
                'repair_swaps': len(self.last_run['repair_swaps']),
                'ordering': self.last_run['ordering'],
            },
            'constraint_violations': violations,
        }

    def print_report(self, solution: dict):
        """Print a comprehensive solution report."""
        print("\n" + "=" * 80)
        print("TEAMMATE FORMATION SOLUTION REPORT")
        print("=" * 80)

        stats = solution['statistics']
        print(f"\n{'SUMMARY':^80}")
        print("-" * 80)
        print(f"  Status: {solution['status']}")
        print(f"  Participants: {stats['assigned']}/{stats['total_participants']} assigned ({stats['assignment_rate']:.1f}%)")
        print(f"  Teams Formed: {stats['teams_formed']} ({stats['balanced_teams']} balanced)")
        print(f"  Ordering: {stats['ordering']}")
        print(f"  Average Skill: {stats['global_average_skill']:.2f} (spread {stats['skill_spread']:.2f})")
        print(f"  Swaps: {stats['balance_swaps']} skill balancing, {stats['repair_swaps']} role repair")

        print(f"\n{'TEAMS':^80}")
        print("-" * 80)
        for team in solution['teams']:
            c = team.composition()
            status = "[OK]" if team.team_id not in solution['constraint_violations'] else "[SOFT]"
            print(f"\n  {status} Team: {team.team_id}")
            print(f"     Size: {team.size}/{team.capacity}   Avg Skill: {team.average_skill:.2f}")
            print(f"     Leaders/Balanced/Thinkers: {c['leaders']}/{c['balanced']}/{c['thinkers']}")
            print(f"     Distinct Roles: {c['distinct_roles']}")
            for p in team.members:
                print(f"       {p.id:<6} {p.name:<22} {p.preferred_group:<14} "
                      f"skill={p.skill_level:<2} {p.role.display_name:<12} {p.trait_type.display_name}")

        if solution['constraint_violations']:
            print(f"\n{'BALANCE NOTES':^80}")
            print("-" * 80)
            for tid, problems in solution['constraint_violations'].items():
                for problem in problems:
                    print(f"  ℹ {tid}: {problem}")

        if solution['unassigned_participants']:
            print(f"\n{'UNASSIGNED PARTICIPANTS':^80}")
            print("-" * 80)
            for p in solution['unassigned_participants'][:20]:
                print(f"  ID {p.id}: {p.name}, skill={p.skill_level}, {p.role.display_name}, {p.trait_type.display_name}")
            if len(solution['unassigned_participants']) > 20:
                print(f"  ... and {len(solution['unassigned_participants']) - 20} more")

        print("\n" + "=" * 80)

    def export_solution(self, solution: dict, output_path: str = "team_assignments.xlsx"):
        """Export the solution to CSV (flat table) or Excel (multiple sheets)."""
        self.log(f"Exporting solution to {output_path}...")
        df_assignments = teams_to_frame(solution['teams'])

        try:
            if output_path.lower().endswith('.csv'):
                df_assignments.to_csv(output_path, index=False)
            else:
                summary_rows = []
                for team in solution['teams']:
                    c = team.composition()
                    summary_rows.append({
                        'Team': team.team_id,
                        'Size': team.size,
                        'Average Skill': round(team.average_skill, 2),
                        'Leaders': c['leaders'],
                        'Balanced': c['balanced'],
                        'Thinkers': c['thinkers'],
                        'Distinct Roles': c['distinct_roles'],
                        'Balanced Team': 'Yes' if team.team_id not in solution['constraint_violations'] else 'No',
                        'Notes': '; '.join(solution['constraint_violations'].get(team.team_id, [])),
                    })
                df_summary = pd.DataFrame(summary_rows)
                df_unassigned = pd.DataFrame(
                    [p.to_dict() for p in solution['unassigned_participants']],
                    columns=['id', 'name', 'email', 'preferred_group', 'skill_level',
                             'role', 'trait_score', 'trait_type'])

                with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                    df_summary.to_excel(writer, sheet_name='Team Summary', index=False)
                    df_assignments.to_excel(writer, sheet_name='Team Assignments', index=False)
                    df_unassigned.to_excel(writer, sheet_name='Unassigned', index=False)
        except OSError as e:
            raise FileProcessingError(f"Error writing to file: {output_path}") from e

        self.log(f"Solution exported to {output_path}")


# =============================================================================
# Team service
# =============================================================================

class TeamService:
    """Keeps the latest formed teams and answers participant lookups."""

    def __init__(self):
        self.teams: List[Team] = []
        self.participant_to_team: Dict[str, str] = {}

    def generate_teams(self, participants: List[Participant], team_size: int,
                       time_limit_seconds: float = TeamMateSolver.DEFAULT_TIME_LIMIT,
                       **options) -> List[Team]:
        """
        Replace the current teams with a fresh allocation.

        The run is bounded by time_limit_seconds; on any failure the previous
        teams are cleared and nothing partial is kept.
        """
        if not participants:
            raise InvalidInputError("No participants available")

        self.clear_all_teams()
        solver = TeamMateSolver(participants, verbose=False)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='teammate-run')
        try:
            future = executor.submit(solver.form_teams, team_size,
                                     time_limit_seconds=time_limit_seconds, **options)
            done, _ = wait([future], timeout=time_limit_seconds + TeamMateSolver.SHUTDOWN_TIMEOUT)
            if not done:
                raise AllocationTimeoutError("Team generation timeout")
            teams = future.result()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        self.teams = teams
        self.participant_to_team = {p.id: t.team_id for t in teams for p in t.members}
        logger.info("Generated %d teams", len(teams))
        return list(teams)

    def get_all_teams(self) -> List[Team]:
        return list(self.teams)

    def get_team_by_participant(self, participant_id: str) -> Optional[Team]:
        team_id = self.participant_to_team.get(participant_id)
        if team_id is None:
            return None
        for team in self.teams:
            if team.team_id == team_id:
                return team
        return None

    def export_to_csv(self, path: str, teams: Optional[List[Team]] = None):
        teams = self.teams if teams is None else teams
        if not teams:
            raise FileProcessingError("No teams to export")
        save_teams(teams, path)
        logger.info("Exported teams to %s", path)

    def clear_all_teams(self):
        self.teams = []
        self.participant_to_team = {}

    @property
    def team_count(self) -> int:
        return len(self.teams)


def main():
    """Main entry point for standalone execution."""
    parser = argparse.ArgumentParser(description="Form balanced teams from a participant CSV")
    parser.add_argument('data_path', nargs='?', default='data/participants_sample.csv')
    parser.add_argument('--team-size', type=int, default=5)
    parser.add_argument('--ordering', choices=[s.value for s in OrderingStrategy],
                        default=OrderingStrategy.DETERMINISTIC.value)
    parser.add_argument('--seed', type=int, default=None)
    parser.add_argument('--time-limit', type=float, default=TeamMateSolver.DEFAULT_TIME_LIMIT)
    parser.add_argument('--output', default='team_assignments.xlsx')
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    if not os.path.exists(args.data_path):
        print(f"Error: Data file not found: {args.data_path}")
        return

    solver = TeamMateSolver.from_csv(args.data_path, verbose=True)
    solution = solver.solve(
        team_size=args.team_size,
        ordering=args.ordering,
        seed=args.seed,
        time_limit_seconds=args.time_limit,
    )

    solver.print_report(solution)
    solver.export_solution(solution, args.output)
    print(f"\nComplete! Check '{args.output}' for the full solution.")


if __name__ == "__main__":
    main()
