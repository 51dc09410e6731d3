"""
TeamMate Data Layer
===================

Participant CSV loading/saving, team export tables and the participant
registry that hands out P-numbered IDs.

Participant CSV columns:
    ID, Name, Email, PreferredGame, SkillLevel, PreferredRole, PersonalityScore
An optional PersonalityType column is accepted and ignored; the type is
always derived from PersonalityScore.

Author: TeamMate Formation System
"""

import logging
import os
import re
from typing import Dict, List, Optional

import pandas as pd

from teammate_model import (
    FileProcessingError,
    InvalidInputError,
    Participant,
    Role,
    Team,
)

logger = logging.getLogger(__name__)


PARTICIPANT_COLUMNS = ['ID', 'Name', 'Email', 'PreferredGame', 'SkillLevel',
                       'PreferredRole', 'PersonalityScore']
TEAM_COLUMNS = ['TeamID', 'ParticipantID', 'Name', 'Email', 'PreferredGame', 'SkillLevel',
                'Role', 'PersonalityType', 'PersonalityScore']

ID_PATTERN = re.compile(r'^P(\d{3,})$')
EMAIL_PATTERN = re.compile(r'^[A-Za-z0-9+_.-]+@(.+)$')


def is_valid_email(email: str) -> bool:
    if email is None or not str(email).strip():
        return False
    return EMAIL_PATTERN.match(str(email)) is not None


def sanitize_input(text: str) -> str:
    if text is None:
        return ''
    return re.sub(r'[<>"\']', '', str(text).strip())


def validate_csv_path(path: str):
    """Raise FileProcessingError unless path is an existing, readable .csv file."""
    if not os.path.exists(path):
        raise FileProcessingError(f"File does not exist: {path}")
    if not os.access(path, os.R_OK):
        raise FileProcessingError(f"File is not readable: {path}")
    if not path.lower().endswith('.csv'):
        raise FileProcessingError(f"File must be a CSV file: {path}")


def _participant_from_row(row, line_number: int) -> Participant:
    try:
        participant_id = str(row['ID']).strip()
        name = str(row['Name']).strip()
        if not participant_id or not name or participant_id == 'nan' or name == 'nan':
            raise InvalidInputError("ID and Name cannot be empty")
        email = '' if pd.isna(row['Email']) else str(row['Email']).strip()
        group = '' if pd.isna(row['PreferredGame']) else str(row['PreferredGame']).strip()
        skill = int(float(row['SkillLevel']))
        role = Role.from_string(row['PreferredRole'])
        score = int(float(row['PersonalityScore']))
    except (ValueError, TypeError) as e:
        raise InvalidInputError(f"Invalid value in line {line_number}: {e}") from e

    return Participant(participant_id, name, email, group, skill, role, score)


def participants_from_frame(df: pd.DataFrame) -> List[Participant]:
    """Build participants from a DataFrame, skipping rows that fail validation."""
    missing = [c for c in PARTICIPANT_COLUMNS if c not in df.columns]
    if missing:
        raise FileProcessingError(f"Missing columns: {', '.join(missing)}")

    participants = []
    seen = set()
    for idx, row in df.iterrows():
        # Header is line 1
        line_number = idx + 2
        try:
            participant = _participant_from_row(row, line_number)
        except InvalidInputError as e:
            logger.warning("Skipping invalid line %d: %s", line_number, e)
            continue
        if participant.id in seen:
            logger.warning("Skipping duplicate participant %s on line %d", participant.id, line_number)
            continue
        seen.add(participant.id)
        participants.append(participant)
    return participants


def load_participants(path: str) -> List[Participant]:
    """
    Load participants from a CSV file.

    Args:
        path: Path to the participant CSV

    Returns:
        Valid participants in file order

    Raises:
        FileProcessingError: missing/unreadable file, wrong columns, or no valid rows
    """
    validate_csv_path(path)
    try:
        df = pd.read_csv(path, dtype=str, skipinitialspace=True)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise FileProcessingError(f"Error reading file: {path}") from e

    df.columns = [str(c).strip() for c in df.columns]
    participants = participants_from_frame(df)
    if not participants:
        raise FileProcessingError("No valid participants found in file")

    logger.info("Loaded %d participants from %s", len(participants), path)
    return participants


def participants_to_frame(participants: List[Participant]) -> pd.DataFrame:
    rows = [{
        'ID': p.id,
        'Name': p.name,
        'Email': p.email,
        'PreferredGame': p.preferred_group,
        'SkillLevel': p.skill_level,
        'PreferredRole': p.role.display_name,
        'PersonalityScore': p.trait_score,
        'PersonalityType': p.trait_type.display_name,
    } for p in participants]
    return pd.DataFrame(rows, columns=PARTICIPANT_COLUMNS + ['PersonalityType'])


def save_participants(participants: List[Participant], path: str):
    """Overwrite the participant CSV with the given participants."""
    try:
        participants_to_frame(participants).to_csv(path, index=False)
    except OSError as e:
        raise FileProcessingError(f"Error writing to file: {path}") from e


def teams_to_frame(teams: List[Team]) -> pd.DataFrame:
    """Flatten teams into one row per member."""
    rows = []
    for team in teams:
        for p in team.members:
            rows.append({
                'TeamID': team.team_id,
                'ParticipantID': p.id,
                'Name': p.name,
                'Email': p.email,
                'PreferredGame': p.preferred_group,
                'SkillLevel': p.skill_level,
                'Role': p.role.display_name,
                'PersonalityType': p.trait_type.display_name,
                'PersonalityScore': p.trait_score,
            })
    return pd.DataFrame(rows, columns=TEAM_COLUMNS)


def save_teams(teams: List[Team], path: str):
    try:
        teams_to_frame(teams).to_csv(path, index=False)
    except OSError as e:
        raise FileProcessingError(f"Error writing to file: {path}") from e
    logger.info("Teams successfully saved to %s", path)


# =============================================================================
# Participant registry
# =============================================================================

class ParticipantRegistry:
    """
    In-memory participant store keyed by ID, in insertion order.

    When csv_path is set every mutation rewrites that file; a failed write
    is logged and the in-memory change is kept.
    """

    FIRST_ID_NUMBER = 101

    def __init__(self, csv_path: Optional[str] = None):
        self.csv_path = csv_path
        self.participants: Dict[str, Participant] = {}
        self.next_id_number = self.FIRST_ID_NUMBER

    def _generate_id(self) -> str:
        while f"P{self.next_id_number:03d}" in self.participants:
            self.next_id_number += 1
        new_id = f"P{self.next_id_number:03d}"
        self.next_id_number += 1
        return new_id

    def _persist(self):
        if not self.csv_path:
            return
        try:
            save_participants(self.all(), self.csv_path)
        except FileProcessingError as e:
            logger.error("Failed to save participants to %s: %s", self.csv_path, e)

    def register(self, name: str, email: str, preferred_group: str, skill_level: int,
                 role: Role, trait_score: int) -> Participant:
        """Create a participant with the next free P-number ID."""
        name = sanitize_input(name)
        if not name:
            raise InvalidInputError("Name cannot be empty")
        if not is_valid_email(email):
            raise InvalidInputError("Invalid email format")

        participant = Participant(self._generate_id(), name, email.strip(),
                                  sanitize_input(preferred_group), skill_level, role, trait_score)
        self.participants[participant.id] = participant
        self._persist()
        logger.info("Participant registered: %s", participant.id)
        return participant

    def get(self, participant_id: str) -> Optional[Participant]:
        return self.participants.get(participant_id)

    def update(self, participant: Participant):
        if participant is None:
            raise InvalidInputError("Participant cannot be null")
        if participant.id not in self.participants:
            raise InvalidInputError("Participant not found")
        self.participants[participant.id] = participant
        self._persist()
        logger.info("Participant updated: %s", participant.id)

    def delete(self, participant_id: str) -> bool:
        if self.participants.pop(participant_id, None) is None:
            return False
        self._persist()
        logger.info("Participant deleted: %s", participant_id)
        return True

    def all(self) -> List[Participant]:
        return list(self.participants.values())

    def __len__(self):
        return len(self.participants)

    def load_csv(self, path: str) -> int:
        """Add participants from a CSV; the ID counter moves past any P-number seen."""
        loaded = load_participants(path)
        for p in loaded:
            self.participants[p.id] = p
            match = ID_PATTERN.match(p.id)
            if match and int(match.group(1)) >= self.next_id_number:
                self.next_id_number = int(match.group(1)) + 1

        logger.info("Loaded %d participants. Next ID: P%03d", len(loaded), self.next_id_number)
        return len(loaded)
