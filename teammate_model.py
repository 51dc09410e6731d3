"""
TeamMate Entity Model
=====================

Participants, teams and the closed vocabularies they are described with.

- Role: five functional preferences a participant can declare
- TraitType: three-way classification derived from the personality score
    Leader   (90-100)
    Balanced (70-89)
    Thinker  (50-69)
- Participant: identity plus mutable profile attributes
- Team: fixed-capacity roster with a derived average skill

Author: TeamMate Formation System
"""

from enum import Enum
from typing import Dict, List, Optional, Set


SKILL_MIN = 1
SKILL_MAX = 10
TRAIT_SCORE_MIN = 50
TRAIT_SCORE_MAX = 100
SURVEY_QUESTIONS = 5


# =============================================================================
# Exceptions
# =============================================================================

class TeamMateError(Exception):
    """Base class for all team formation errors."""


class InvalidInputError(TeamMateError, ValueError):
    """Invalid participant data or allocation preconditions."""


class FileProcessingError(TeamMateError):
    """Participant or team file could not be read or written."""


class AllocationError(TeamMateError):
    """An allocation run failed; no teams are returned."""


class AllocationTimeoutError(AllocationError):
    """An allocation run exceeded its time limit."""


# =============================================================================
# Vocabularies
# =============================================================================

class Role(Enum):
    STRATEGIST = ('Strategist', 'Focuses on tactics and planning')
    ATTACKER = ('Attacker', 'Frontline player with offensive tactics')
    DEFENDER = ('Defender', 'Protects and supports team stability')
    SUPPORTER = ('Supporter', 'Jack-of-all-trades, adapts roles')
    COORDINATOR = ('Coordinator', 'Communication lead, keeps team organized')

    def __init__(self, display_name: str, description: str):
        self.display_name = display_name
        self.description = description

    @classmethod
    def from_string(cls, text: str) -> 'Role':
        """Parse an enum name or display name, ignoring case."""
        if text is None:
            raise ValueError("Role cannot be empty")
        key = str(text).strip()
        for role in cls:
            if role.name.lower() == key.lower() or role.display_name.lower() == key.lower():
                return role
        raise ValueError(f"Unknown role: {text}")


class TraitType(Enum):
    # Declaration order is the ascending order used when sorting participants
    LEADER = (90, 100, 'Leader', 'Confident, decision-maker, naturally takes charge')
    BALANCED = (70, 89, 'Balanced', 'Adaptive, communicative, team-oriented')
    THINKER = (50, 69, 'Thinker', 'Observant, analytical, prefers planning before action')

    def __init__(self, min_score: int, max_score: int, display_name: str, description: str):
        self.min_score = min_score
        self.max_score = max_score
        self.display_name = display_name
        self.description = description

    @property
    def rank(self) -> int:
        return list(TraitType).index(self)

    def contains(self, score: int) -> bool:
        return self.min_score <= score <= self.max_score

    @classmethod
    def from_string(cls, text: str) -> 'TraitType':
        if text is None:
            raise ValueError("Personality type cannot be empty")
        key = str(text).strip()
        for trait in cls:
            if trait.name.lower() == key.lower() or trait.display_name.lower() == key.lower():
                return trait
        raise ValueError(f"Unknown personality type: {text}")


def is_valid_trait_score(score: int) -> bool:
    return TRAIT_SCORE_MIN <= score <= TRAIT_SCORE_MAX


def is_valid_skill_level(skill: int) -> bool:
    return SKILL_MIN <= skill <= SKILL_MAX


def classify_trait_score(score: int) -> TraitType:
    """
    Map a personality score onto its trait type.

    Args:
        score: Personality score, 50-100 inclusive

    Returns:
        The TraitType whose range contains the score

    Raises:
        ValueError: if the score is outside 50-100
    """
    if not is_valid_trait_score(score):
        raise ValueError(
            f"Invalid personality score: {score}. "
            f"Must be between {TRAIT_SCORE_MIN} and {TRAIT_SCORE_MAX}")
    for trait in TraitType:
        if trait.contains(score):
            return trait
    return TraitType.THINKER


def calculate_survey_score(responses: List[int]) -> int:
    """
    Turn five 1-5 survey answers into a personality score.

    The answers are summed (5-25) and scaled by 4 (20-100); anything below
    the valid minimum is raised to 50.
    """
    if responses is None or len(responses) != SURVEY_QUESTIONS:
        raise InvalidInputError(f"Survey must have exactly {SURVEY_QUESTIONS} responses")

    total = 0
    for i, answer in enumerate(responses):
        if not 1 <= answer <= 5:
            raise InvalidInputError(f"Response {i + 1} must be between 1 and 5")
        total += answer

    return max(total * 4, TRAIT_SCORE_MIN)


def validate_team_size(team_size: int, total_participants: int,
                       min_size: int = 3, max_size: int = 10):
    """Raise InvalidInputError unless at least two full teams can be formed."""
    if not min_size <= team_size <= max_size:
        raise InvalidInputError(
            f"Team size must be between {min_size} and {max_size} (got {team_size})")
    if total_participants // team_size < 2:
        raise InvalidInputError(
            f"Cannot form 2 teams of size {team_size} from {total_participants} participants")


# =============================================================================
# Participant
# =============================================================================

class Participant:
    """A club member waiting to be placed into a team."""

    def __init__(self, participant_id: str, name: str, email: str, preferred_group: str,
                 skill_level: int, role: Role, trait_score: int):
        if not participant_id or not str(participant_id).strip():
            raise InvalidInputError("Participant ID cannot be empty")
        self._id = str(participant_id).strip()
        self.name = name
        self.email = email
        self.preferred_group = preferred_group
        self.role = role if isinstance(role, Role) else Role.from_string(role)
        self.skill_level = skill_level
        self.trait_score = trait_score

    @property
    def id(self) -> str:
        return self._id

    @property
    def skill_level(self) -> int:
        return self._skill_level

    @skill_level.setter
    def skill_level(self, value: int):
        if not is_valid_skill_level(value):
            raise InvalidInputError(f"Skill level must be between {SKILL_MIN} and {SKILL_MAX}")
        self._skill_level = int(value)

    @property
    def trait_score(self) -> int:
        return self._trait_score

    @trait_score.setter
    def trait_score(self, value: int):
        # The only place trait_type is written
        if not is_valid_trait_score(value):
            raise InvalidInputError(f"Invalid personality score: {value}")
        self._trait_score = int(value)
        self._trait_type = classify_trait_score(self._trait_score)

    @property
    def trait_type(self) -> TraitType:
        return self._trait_type

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'preferred_group': self.preferred_group,
            'skill_level': self.skill_level,
            'role': self.role.display_name,
            'trait_score': self.trait_score,
            'trait_type': self.trait_type.display_name,
        }

    def __eq__(self, other):
        if not isinstance(other, Participant):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return (f"Participant(id={self.id}, name={self.name}, group={self.preferred_group}, "
                f"skill={self.skill_level}, role={self.role.display_name}, "
                f"trait={self.trait_type.display_name}({self.trait_score}))")


# =============================================================================
# Team
# =============================================================================

class Team:
    """A fixed-capacity group produced by one allocation run."""

    def __init__(self, team_id: str, capacity: int):
        self.team_id = team_id
        self.capacity = capacity
        self._members: List[Participant] = []
        self.average_skill = 0.0

    @property
    def members(self) -> List[Participant]:
        return list(self._members)

    @property
    def size(self) -> int:
        return len(self._members)

    def __len__(self):
        return len(self._members)

    def __contains__(self, participant) -> bool:
        return participant in self._members

    def is_full(self) -> bool:
        return len(self._members) >= self.capacity

    def add_member(self, participant: Participant) -> bool:
        """Add a participant; returns False if the team is full or already holds them."""
        if self.is_full() or participant in self._members:
            return False
        self._members.append(participant)
        self._recalculate_average()
        return True

    def remove_member(self, participant: Participant) -> bool:
        if participant not in self._members:
            return False
        self._members.remove(participant)
        self._recalculate_average()
        return True

    def _recalculate_average(self):
        if not self._members:
            self.average_skill = 0.0
        else:
            self.average_skill = sum(p.skill_level for p in self._members) / len(self._members)

    def trait_count(self, trait: TraitType) -> int:
        return sum(1 for p in self._members if p.trait_type == trait)

    def role_count(self, role: Role) -> int:
        return sum(1 for p in self._members if p.role == role)

    def group_count(self, group: str) -> int:
        key = (group or '').strip().lower()
        return sum(1 for p in self._members if (p.preferred_group or '').strip().lower() == key)

    def distinct_roles(self) -> Set[Role]:
        return {p.role for p in self._members}

    def group_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for p in self._members:
            key = (p.preferred_group or '').strip().lower()
            counts[key] = counts.get(key, 0) + 1
        return counts

    def balance_violations(self, min_role_diversity: int = 3) -> List[str]:
        """
        List the balance criteria this team fails; empty when balanced.

        A balanced team is full, covers at least min(3, capacity) roles, has no
        preference group holding more than half its capacity, and mixes at
        least two trait types.
        """
        violations = []
        if not self.is_full():
            violations.append(f"Size {self.size}/{self.capacity}")
        roles_needed = min(min_role_diversity, self.capacity)
        if len(self.distinct_roles()) < roles_needed:
            violations.append(f"{len(self.distinct_roles())} distinct roles (need >= {roles_needed})")
        for group, count in self.group_counts().items():
            if count > self.capacity // 2:
                violations.append(f"{count} members prefer '{group}' (max {self.capacity // 2})")
        trait_types = {p.trait_type for p in self._members}
        if len(trait_types) < 2:
            violations.append("Single personality type")
        return violations

    def is_balanced(self) -> bool:
        return not self.balance_violations()

    def composition(self) -> dict:
        return {
            'leaders': self.trait_count(TraitType.LEADER),
            'balanced': self.trait_count(TraitType.BALANCED),
            'thinkers': self.trait_count(TraitType.THINKER),
            'roles': {role.display_name: self.role_count(role) for role in Role},
            'distinct_roles': len(self.distinct_roles()),
            'groups': self.group_counts(),
        }

    def find_member(self, participant_id: str) -> Optional[Participant]:
        for p in self._members:
            if p.id == participant_id:
                return p
        return None

    def __repr__(self):
        return (f"Team(id={self.team_id}, size={self.size}/{self.capacity}, "
                f"avg_skill={self.average_skill:.2f}, balanced={self.is_balanced()})")
