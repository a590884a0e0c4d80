"""
CSV Reader

Reads the spreadsheet export of the challenge plan into WorkoutRow objects.

Features:
- Encoding fallback (utf-8 with or without BOM, cp1252, latin-1)
- Delimiter detection (comma, semicolon, tab)
- Header aliases with fuzzy matching, so "Day Title" and "DayTitle" both work
- Header names are literal keys: "Cardio / Notes" is one column
"""

import io
import csv
import re
import logging
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Tuple, Union

from fitness_challenge_api.errors import PlanFormatError
from .models import WorkoutRow

logger = logging.getLogger(__name__)


# Field -> accepted header names, first = canonical
FIELD_ALIASES: Dict[str, List[str]] = {
    'day': ['Day', 'Day Number', 'Day #'],
    'day_title': ['DayTitle', 'Day Title', 'Workout Type', 'Title'],
    'day_focus': ['DayFocus', 'Day Focus', 'Muscle Group / Focus', 'Focus'],
    'category': ['Category', 'Section'],
    'exercise_name': ['ExerciseName', 'Exercise Name', 'Exercise'],
    'sets': ['Sets', 'Set'],
    'reps': ['Reps', 'Rep', 'Repetitions'],
    'notes': ['Cardio / Notes', 'Notes', 'Note', 'Comments'],
}

# Fuzzy matching threshold (85% similarity)
FUZZY_MATCH_THRESHOLD = 0.85

# Older exports packed a whole day into one cell ("Push-ups: 4x8, Squats: 4x10");
# those columns are not read as exercise names
PACKED_EXERCISE_HEADERS = {'exercises', 'exerciselist'}

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def _decode_content(content: bytes) -> str:
    """Decode bytes to string, trying multiple encodings"""
    for encoding in ('utf-8-sig', 'cp1252'):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue

    return content.decode('latin-1', errors='replace')


def _detect_delimiter(text: str) -> str:
    """Detect CSV delimiter from the first few lines"""
    sample = '\n'.join(text.split('\n')[:5])

    delimiters = {
        ',': sample.count(','),
        ';': sample.count(';'),
        '\t': sample.count('\t'),
    }

    return max(delimiters, key=delimiters.get)


def _normalize_header(header: str) -> str:
    return _NON_ALNUM.sub('', header.lower())


def _match_header(header: str) -> Tuple[Optional[str], float]:
    """
    Find the field a header belongs to.

    Returns:
        Tuple of (field_key, similarity_score) or (None, 0.0) if no match
    """
    normalized = _normalize_header(header)
    if not normalized:
        return None, 0.0

    best_field = None
    best_score = 0.0

    for field_key, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            alias_normalized = _normalize_header(alias)
            if normalized == alias_normalized:
                return field_key, 1.0

            score = SequenceMatcher(None, normalized, alias_normalized).ratio()
            if score >= FUZZY_MATCH_THRESHOLD and score > best_score:
                best_field = field_key
                best_score = score

    return best_field, best_score


def _is_packed_header(header: str) -> bool:
    return _normalize_header(header) in PACKED_EXERCISE_HEADERS


def map_headers(headers: List[str]) -> Dict[str, str]:
    """
    Map plan fields to the headers present in the file.

    Exact alias matches win over fuzzy ones; each field takes one header.

    Returns:
        Dict of field_key -> header
    """
    mapping: Dict[str, str] = {}
    scores: Dict[str, float] = {}

    for header in headers:
        if header is None or _is_packed_header(header):
            continue
        field_key, score = _match_header(header)
        if field_key and score > scores.get(field_key, 0.0):
            mapping[field_key] = header
            scores[field_key] = score

    return mapping


def read_workout_rows(content: Union[str, bytes]) -> List[WorkoutRow]:
    """
    Read a plan CSV export into rows, in file order.

    Args:
        content: CSV text or raw bytes with a header row

    Returns:
        List of WorkoutRow, blank lines skipped

    Raises:
        PlanFormatError: if there is no header row, no recognizable column,
            or only a packed "Exercises" column
    """
    text = _decode_content(content) if isinstance(content, bytes) else content
    text = text.lstrip('\ufeff')

    delimiter = _detect_delimiter(text)
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
    headers = reader.fieldnames or []

    if not headers:
        raise PlanFormatError("No headers found in plan CSV")

    mapping = map_headers(headers)

    packed = [h for h in headers if h is not None and _is_packed_header(h)]
    if packed:
        if 'exercise_name' not in mapping:
            raise PlanFormatError(
                f"Plan CSV packs exercises into one column {packed}; "
                "one row per exercise with an ExerciseName column is required"
            )
        logger.warning(f"Ignoring packed exercise columns {packed}, using '{mapping['exercise_name']}'")

    if 'day' not in mapping and 'exercise_name' not in mapping:
        raise PlanFormatError(f"Plan CSV has no Day or ExerciseName column (headers: {headers})")

    missing = [key for key in FIELD_ALIASES if key not in mapping]
    if missing:
        logger.info(f"Plan CSV missing optional columns: {missing}")

    rows: List[WorkoutRow] = []
    # Line 1 is the header
    for line_number, raw in enumerate(reader, start=2):
        values = {
            field_key: (raw.get(header) or '').strip()
            for field_key, header in mapping.items()
        }
        if not any(values.values()):
            continue
        rows.append(WorkoutRow(source_row=line_number, **values))

    return rows
