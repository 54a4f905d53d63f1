import io
import json
import os
import re
import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from urllib.parse import unquote

import pandas as pd
import requests

logger = logging.getLogger("api")


def _log_level(name) -> int:
    level = logging.getLevelName(str(name or '').strip().upper())
    return level if isinstance(level, int) else logging.INFO


logger.setLevel(_log_level(os.environ.get('LOG_LEVEL', 'INFO')))

# Configuration for Google Sheet source
DEFAULT_SHEET_CSV_URL = 'https://docs.google.com/spreadsheets/d/e/2PACX-1vTy8CweGTUMVlovuY8BwSwcjKKCHxKC7VGIGNnQ_Yuj6kxSg3R5h4kIifd_ZFRzdlK5aVzS3q4608v5/pub?gid=0&single=true&output=csv'
SHEET_CSV_URL = os.environ.get('SHEET_CSV_URL', DEFAULT_SHEET_CSV_URL).strip()

CACHE_TTL_S = float(os.environ.get('CACHE_TTL_S', '3600').strip() or 3600)
CSV_TIMEOUT_S = float(os.environ['CSV_TIMEOUT_S']) if os.environ.get('CSV_TIMEOUT_S', '').strip() else None
CSV_SKIP_HEADER = os.environ.get('CSV_SKIP_HEADER', '').strip().lower() in ('1', 'true', 'yes')

# Sheet columns in order; the published CSV carries no header row
COLUMNS = (
    'level', 'topic', 'word', 'wordType', 'phonetic', 'mean',
    'definition_vi', 'definition_us', 'example', 'synonym', 'antonym',
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
}


class SourceError(Exception):
    """Upstream sheet could not be fetched or parsed."""


class FetchError(SourceError):
    pass


class ParseError(SourceError):
    pass


class ApiError(Exception):
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    status = 400


class NotFoundError(ApiError):
    status = 404


class SourceUnavailableError(ApiError):
    status = 500


def json_response(data: dict, status: int = 200, extra_headers: dict | None = None):
    body = json.dumps(data, ensure_ascii=False)
    headers = {"Content-Type": "application/json; charset=utf-8", **CORS_HEADERS}
    if extra_headers:
        headers.update(extra_headers)
    return (body, status, headers)


def html_response(html: str, status: int = 200):
    headers = {"Content-Type": "text/html; charset=utf-8", **CORS_HEADERS}
    return (html, status, headers)


def is_truthy(value) -> bool:
    return str(value or '').strip().lower() in ('1', 'true', 'yes')


def _pubhtml_to_csv(url: str) -> str:
    u = (url or '').strip()
    if not u:
        return ''
    u = u.replace('/pubhtml', '/pub')
    m = re.search(r'[?&]gid=([^&#]+)', u)
    gid = m.group(1) if m else ''
    base = u.split('?')[0]
    if gid:
        return f"{base}?gid={gid}&single=true&output=csv"
    return f"{base}?output=csv"


def fetch_csv_text(url: str | None = None, session=None, timeout: float | None = CSV_TIMEOUT_S) -> str:
    target = (url or SHEET_CSV_URL).strip()
    if 'pubhtml' in target:
        target = _pubhtml_to_csv(target)
    http = session or requests
    try:
        resp = http.get(target, timeout=timeout, headers={
            'Cache-Control': 'no-cache',
            'Pragma': 'no-cache',
        })
        resp.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch sheet CSV from {target}: {e}") from e
    text = resp.content.decode('utf-8', errors='replace')
    logger.info("[Sheet] fetched %s status=%s bytes=%d", target, getattr(resp, 'status_code', 'n/a'), len(resp.content))
    return text


def parse_csv(text: str, columns=COLUMNS, skip_header: bool = CSV_SKIP_HEADER) -> List[Dict[str, str]]:
    """
    Parse headerless CSV text into dicts keyed positionally by `columns`.

    Short rows are padded with '' and columns past the schema are dropped.
    Raises ParseError when pandas cannot tokenize the text.
    """
    body = (text or '').lstrip('\ufeff')
    if not body.strip():
        return []
    try:
        df = pd.read_csv(
            io.StringIO(body),
            header=None,
            names=list(range(len(columns))),
            usecols=list(range(len(columns))),
            dtype=str,
            keep_default_na=False,
            skiprows=1 if skip_header else 0,
        )
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, ValueError) as e:
        raise ParseError(f"Malformed sheet CSV: {e}") from e
    df = df.fillna('')
    df.columns = list(columns)
    return df.to_dict(orient='records')


@dataclass
class VocabularyRecord:
    level: str
    topic: str
    word: str
    word_type: str = ''
    phonetic: str = ''
    mean: str = ''
    definition_vi: str = ''
    definition_us: str = ''
    example: str = ''
    synonym: str = ''
    antonym: str = ''

    @classmethod
    def from_row(cls, row: dict) -> "VocabularyRecord":
        values = [str(row.get(c) or '') for c in COLUMNS]
        return cls(*values)

    @property
    def level_key(self) -> str:
        return self.level.strip().upper()

    @property
    def topic_key(self) -> str:
        return self.topic.strip()

    def to_dict(self) -> dict:
        return {
            'level': self.level,
            'topic': self.topic,
            'word': self.word,
            'wordType': self.word_type,
            'phonetic': self.phonetic,
            'mean': self.mean,
            'definition_vi': self.definition_vi,
            'definition_us': self.definition_us,
            'example': self.example,
            'synonym': self.synonym,
            'antonym': self.antonym,
        }


def filter_records(rows) -> List[VocabularyRecord]:
    out = []
    for r in rows:
        if str(r.get('word') or '').strip() and str(r.get('level') or '').strip():
            out.append(VocabularyRecord.from_row(r))
    return out


@dataclass
class CacheResult:
    records: List[VocabularyRecord] = field(default_factory=list)
    fetched_at: float = 0.0
    stale: bool = False

    @property
    def last_updated(self) -> str:
        return datetime.fromtimestamp(self.fetched_at, tz=timezone.utc).isoformat()


class VocabularyCache:
    """
    Process-lifetime cache of parsed sheet records.

    Serves cached records while fresh; otherwise fetches, parses and filters
    the sheet and replaces the records wholesale. When a refresh fails and
    records exist they are served with stale=True; with nothing cached the
    failure surfaces as SourceUnavailableError. There is no locking, so two
    cold requests may both fetch and the last write wins.
    """

    def __init__(self, fetcher: Optional[Callable[[], str]] = None, clock: Callable[[], float] = time.time,
                 ttl: float = CACHE_TTL_S, skip_header: bool = CSV_SKIP_HEADER) -> None:
        self._fetcher = fetcher or fetch_csv_text
        self._clock = clock
        self.ttl = ttl
        self.skip_header = skip_header
        self._records: Optional[List[VocabularyRecord]] = None
        self._fetched_at: float = 0.0

    def is_fresh(self) -> bool:
        return self._records is not None and self._clock() - self._fetched_at < self.ttl

    def load(self, force: bool = False) -> CacheResult:
        if not force and self.is_fresh():
            return CacheResult(self._records, self._fetched_at)
        try:
            rows = parse_csv(self._fetcher(), skip_header=self.skip_header)
        except SourceError as e:
            if self._records is not None:
                logger.warning("[Cache] refresh failed, serving %d cached records: %s", len(self._records), e)
                return CacheResult(self._records, self._fetched_at, stale=True)
            logger.error("[Cache] source unavailable and nothing cached: %s", e)
            raise SourceUnavailableError("Unable to load or process the source data.") from e
        records = filter_records(rows)
        self._records = records
        self._fetched_at = self._clock()
        logger.info("[Cache] refreshed rows=%d kept=%d", len(rows), len(records))
        return CacheResult(records, self._fetched_at)

    def clear(self) -> None:
        self._records = None
        self._fetched_at = 0.0

    def summary(self) -> dict:
        if self._records is None:
            return {'cached': False, 'record_count': 0, 'fetched_at': None, 'age_s': None,
                    'ttl_s': self.ttl, 'fresh': False}
        return {
            'cached': True,
            'record_count': len(self._records),
            'fetched_at': self._fetched_at,
            'age_s': round(self._clock() - self._fetched_at, 1),
            'ttl_s': self.ttl,
            'fresh': self.is_fresh(),
        }


cache = VocabularyCache()


def get_records(force_refresh: bool = False) -> CacheResult:
    return cache.load(force=force_refresh)


def _level_summaries(records, include_topics=False):
    levels: Dict[str, dict] = {}
    for r in records:
        entry = levels.setdefault(r.level_key, {'word_count': 0, 'topics': {}})
        entry['word_count'] += 1
        entry['topics'][r.topic_key] = entry['topics'].get(r.topic_key, 0) + 1
    out = []
    for level in sorted(levels):
        entry = levels[level]
        item = {
            'level': level,
            'word_count': entry['word_count'],
            'topic_count': len(entry['topics']),
        }
        if include_topics:
            item['topics'] = [
                {'topic': t, 'word_count': entry['topics'][t]} for t in sorted(entry['topics'])
            ]
        out.append(item)
    return out


def levels_view(records, include_topics: bool = False) -> List[dict]:
    return _level_summaries(records, include_topics=include_topics)


def topics_view(records, level) -> List[dict]:
    requested = str(level or '').strip().upper()
    if not requested:
        raise ValidationError("Missing required parameter 'level'.")
    counts: Dict[str, int] = {}
    for r in records:
        if r.level_key != requested or not r.topic_key:
            continue
        counts[r.topic_key] = counts.get(r.topic_key, 0) + 1
    return [{'topic': t, 'word_count': counts[t]} for t in sorted(counts)]


def parse_lesson_slug(segments):
    """Split lesson path segments into (LEVEL, topic); topics may contain '/'."""
    if isinstance(segments, str):
        segments = segments.strip('/').split('/')
    parts = list(segments or [])
    if len(parts) < 2:
        raise ValidationError("Missing level and topic in the lesson path.")
    level = str(parts[0]).strip().upper()
    topic = unquote('/'.join(str(p) for p in parts[1:])).strip()
    if not level or not topic:
        raise ValidationError("Missing level and topic in the lesson path.")
    return level, topic


def lesson_view(records, level, topic) -> List[dict]:
    requested_level = str(level or '').strip().upper()
    requested_topic = str(topic or '').strip()
    matches = [
        r.to_dict() for r in records
        if r.level_key == requested_level and r.topic_key == requested_topic
    ]
    if not matches:
        raise NotFoundError("No lesson found for this level and topic.")
    return matches


def stats_view(records) -> dict:
    levels = set()
    pairs = set()
    for r in records:
        levels.add(r.level_key)
        pairs.add((r.level_key, r.topic_key))
    return {
        'totalLevels': len(levels),
        'totalTopics': len(pairs),
        'totalWords': len(records),
        'levelStats': _level_summaries(records),
    }


def run_json(request, build, empty=None):
    """
    Shared JSON handler body: answers OPTIONS, runs `build()` for the payload
    and maps errors onto the {success, message, data} envelope.
    """
    if request.method == "OPTIONS":
        return ('', 200, dict(CORS_HEADERS))
    try:
        payload = build()
        return json_response({'success': True, **payload}, 200)
    except ApiError as e:
        return json_response({'success': False, 'message': e.message, 'data': empty}, e.status)
    except Exception:  # noqa: BLE001
        logger.exception("Unhandled error serving %s", getattr(request, 'path', ''))
        return json_response({'success': False, 'message': 'Internal server error.', 'data': empty}, 500)
