import datetime
import json
import logging
import os
import re
import shutil
import sys
import time
import zipfile
from urllib.parse import urlparse, parse_qs

from . import config

logger = logging.getLogger(__name__)

_MISSING = object()


def setup_logging(logs_dir=None, console_level=logging.CRITICAL):
    """Send INFO and above to a per-run log file; only critical messages reach the terminal."""
    logs_dir = logs_dir or config.LOGS_DIR
    os.makedirs(logs_dir, exist_ok=True)

    log_file_path = os.path.join(logs_dir, f"workflow_{int(time.time())}.log")

    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    file_handler.setFormatter(file_formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)

    logging.basicConfig(level=logging.INFO, handlers=[file_handler, console_handler], force=True)
    return log_file_path


def print_running(node_name):
    """Print running status"""
    print(f"🔄 RUNNING: {node_name}")
    logger.info(f"RUNNING: {node_name}")


def print_status(message):
    """Print status messages to terminal only"""
    print(f"STATUS: {message}")
    logger.info(f"STATUS: {message}")  # Also log to file


def print_completed(node_name, success=True):
    """Print completion status"""
    status = "✅ COMPLETED" if success else "❌ FAILED"
    print(f"{status}: {node_name}")
    logger.info(f"COMPLETED: {node_name} - Success: {success}")


# Text helpers

def clean_text(value):
    """Collapse whitespace (including NBSP) and return None for empty strings."""
    if value is None:
        return None
    text = str(value).replace("\u00a0", " ")
    text = re.sub(r"\s+", " ", text).strip()
    return text or None


def node_text(node):
    """Cleaned text of a BeautifulSoup node, None when the node is missing or blank."""
    if node is None:
        return None
    return clean_text(node.get_text(" "))


def is_empty_value(value):
    """Check if a value is empty, None, or whitespace"""
    if value is None:
        return True
    if isinstance(value, str):
        return len(value.strip()) == 0
    return False


def title_case(word):
    if not word:
        return word
    return word[0].upper() + word[1:].lower()


def capitalize_proper_name(name):
    """Capitalize each part of a name, keeping separators and Mc/Mac prefixes."""
    if not name or not name.strip():
        return ""

    parts = re.split(r"(\s+|-|'|,|\.)", name.strip())
    capitalized = []
    for index, part in enumerate(parts):
        if not part or re.fullmatch(r"\s+|-|'|,|\.", part):
            capitalized.append(part)
            continue
        if len(part) == 1:
            capitalized.append(part.upper())
            continue
        previous = parts[index - 1] if index > 0 else None
        lower = part.lower()
        if previous not in ("'", "-"):
            if lower.startswith("mac") and len(part) > 3:
                capitalized.append("Mac" + part[3].upper() + part[4:].lower())
                continue
            if lower.startswith("mc") and len(part) > 2:
                capitalized.append("Mc" + part[2].upper() + part[3:].lower())
                continue
        capitalized.append(part[0].upper() + part[1:].lower())
    return "".join(capitalized)


def format_name(name):
    """Format name to match the required regex pattern"""
    if not name:
        return None

    name = str(name).strip()
    if not name:
        return None

    parts = re.split(r"([ \-',.]+)", name)
    formatted_parts = []

    for part in parts:
        if re.match(r"^[ \-',.]+$", part):
            formatted_parts.append(part)
        elif part.strip():
            formatted_parts.append(part.strip().capitalize())

    result = "".join(formatted_parts)

    if re.match(r"^[A-Z][a-z]*([ \-',.][A-Za-z][a-z]*)*$", result):
        return result
    return None


# Number helpers

def parse_currency(value):
    """Parse "$1,234.50" style amounts; empty and N/A give None."""
    if value is None:
        return None
    cleaned = re.sub(r"[$,\s]", "", str(value))
    if cleaned == "" or cleaned.upper() == "N/A":
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_float(value):
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.search(r"-?\d[\d,]*\.?\d*", str(value))
    if not match:
        return None
    try:
        return float(match.group(0).replace(",", ""))
    except ValueError:
        return None


def parse_int(value):
    """Parse string to int, extracting only digits"""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    digits_only = re.sub(r"[^0-9]", "", str(value))
    return int(digits_only) if digits_only else None


def round2(n):
    return round(n * 100) / 100


# Date helpers

DATE_PATTERNS = [
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
]


def _iso_or_none(year, month, day):
    try:
        return datetime.date(int(year), int(month), int(day)).strftime("%Y-%m-%d")
    except ValueError:
        return None


def parse_date_to_iso(date_string):
    """Convert various date formats to ISO YYYY-MM-DD format"""
    if date_string is None:
        return None
    date_string = str(date_string).strip()
    if not date_string:
        return None

    # MM/DD/YY and MM/DD/YYYY, with 00 month/day coerced to 01
    match = re.match(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$", date_string)
    if match:
        month, day, year = match.groups()
        if int(month) == 0:
            month = "1"
        if int(day) == 0:
            day = "1"
        if len(year) == 2:
            year = 1900 + int(year) if int(year) >= 50 else 2000 + int(year)
        return _iso_or_none(year, month, day)

    for pattern in DATE_PATTERNS:
        try:
            return datetime.datetime.strptime(date_string, pattern).strftime("%Y-%m-%d")
        except ValueError:
            continue

    match = re.search(r"(\d{1,2})/(\d{1,2})/(\d{4})", date_string)
    if match:
        month, day, year = match.groups()
        return _iso_or_none(year, month, day)

    match = re.search(r"(\d{4})-(\d{1,2})-(\d{1,2})", date_string)
    if match:
        year, month, day = match.groups()
        return _iso_or_none(year, month, day)

    return None


def diff_years_from(date_iso, today=None):
    """Whole years between date_iso and today, never less than 1."""
    if not date_iso:
        return None
    try:
        then = datetime.datetime.strptime(date_iso, "%Y-%m-%d").date()
    except ValueError:
        return None
    today = today or datetime.date.today()
    years = today.year - then.year
    if (today.month, today.day) < (then.month, then.day):
        years -= 1
    return max(years, 1)


# File helpers

def ensure_directory(path):
    """Create directory if it doesn't exist"""
    os.makedirs(path, exist_ok=True)


def read_json(path, default=_MISSING):
    """Load a JSON file; a missing file returns `default` when one is given."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        if default is _MISSING:
            raise
        logger.warning(f"⚠️ {path} not found, using default")
        return default


def write_json(path, data):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return path


def read_text(path):
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        return f.read()


def cleanup_work_directories(work_dir):
    """Recreate empty owners/ and data/ directories inside work_dir"""
    directories_to_cleanup = [
        (config.OWNERS_DIRNAME, os.path.join(work_dir, config.OWNERS_DIRNAME)),
        (config.DATA_DIRNAME, os.path.join(work_dir, config.DATA_DIRNAME)),
    ]

    for dir_name, dir_path in directories_to_cleanup:
        if os.path.exists(dir_path):
            shutil.rmtree(dir_path)
            logger.info(f"🗑️ Cleaned up existing {dir_name} directory: {dir_path}")
        else:
            logger.info(f"📁 {dir_name.capitalize()} directory does not exist, no cleanup needed")

        os.makedirs(dir_path, exist_ok=True)
        logger.info(f"📁 Created fresh {dir_name} directory: {dir_path}")


def create_zip(source_dir, zip_path):
    """Zip every file under source_dir; returns the number of archived files."""
    if not os.path.isdir(source_dir):
        raise FileNotFoundError(f"No directory found to zip: {source_dir}")

    with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zip_ref:
        for root, _dirs, files in os.walk(source_dir):
            for file in sorted(files):
                file_path = os.path.join(root, file)
                archive_path = os.path.relpath(file_path, source_dir)
                zip_ref.write(file_path, archive_path)
                logger.info(f"Added to ZIP: {archive_path}")

    with zipfile.ZipFile(zip_path, "r") as zip_ref:
        file_count = len(zip_ref.namelist())
    logger.info(f"✅ Created ZIP: {zip_path} with {file_count} files")
    return file_count


def extract_query_params_and_base_url(url):
    """Extract base URL (including hash-routing path) and query parameters.
       Parses both regular ?query and ?query inside the fragment (after #)."""
    if not url or is_empty_value(url):
        return None, None

    parsed = urlparse(url)
    base_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"

    params = {}
    if parsed.query:
        for k, v in parse_qs(parsed.query, keep_blank_values=True).items():
            params[k] = v[0] if len(v) == 1 else v

    if parsed.fragment:
        frag_path, _, frag_query = parsed.fragment.partition("?")
        base_url = f"{base_url}#{frag_path}" if frag_path else f"{base_url}#"

        if frag_query:
            for k, v in parse_qs(frag_query, keep_blank_values=True).items():
                if k in params:
                    existing = params[k] if isinstance(params[k], list) else [params[k]]
                    merged = existing + v
                    params[k] = merged if len(merged) > 1 else merged[0]
                else:
                    params[k] = v[0] if len(v) == 1 else v

    return base_url, params
