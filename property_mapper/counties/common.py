"""Work-directory plumbing shared by the county scripts."""
import logging
import os

from bs4 import BeautifulSoup

from .. import config
from ..records import with_source
from ..relationships import write_relationship
from ..utils import ensure_directory, read_json, read_text, write_json

logger = logging.getLogger(__name__)


def load_html(work_dir):
    path = os.path.join(work_dir, config.INPUT_HTML)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input HTML not found: {path}")
    return BeautifulSoup(read_text(path), "html.parser")


def load_input_json(work_dir):
    path = os.path.join(work_dir, config.INPUT_JSON)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input JSON not found: {path}")
    return read_json(path)


def load_seed(work_dir):
    return read_json(os.path.join(work_dir, config.PROPERTY_SEED_FILE), default={})


def load_unnormalized_address(work_dir):
    return read_json(os.path.join(work_dir, config.UNNORMALIZED_ADDRESS_FILE), default={})


def load_owners_file(work_dir, filename):
    return read_json(os.path.join(work_dir, config.OWNERS_DIRNAME, filename), default={})


def write_owners_file(work_dir, filename, property_id, payload):
    """Write {"property_<id>": payload} into owners/<filename>."""
    path = os.path.join(work_dir, config.OWNERS_DIRNAME, filename)
    write_json(path, {property_key(property_id): payload})
    logger.info(f"✅ Wrote {path} for {property_key(property_id)}")
    return path


def property_key(property_id):
    return f"property_{property_id}"


def owners_entry(data, property_id):
    """Entry for property_id; a file holding exactly one property is used regardless of key."""
    key = property_key(property_id)
    if key in data:
        return data[key]
    if len(data) == 1:
        only_key = next(iter(data))
        logger.warning(f"⚠️ {key} not found, using the only entry {only_key}")
        return data[only_key]
    return None


def data_dir_for(work_dir):
    path = os.path.join(work_dir, config.DATA_DIRNAME)
    ensure_directory(path)
    return path


class EntityWriter:
    """Writes entity and relationship files into data/, stamping seed provenance."""

    def __init__(self, data_dir, seed):
        self.data_dir = data_dir
        self.seed = seed or {}
        self.written = []

    def entity(self, filename, record, stamp=True):
        record = with_source(record, self.seed) if stamp else record
        write_json(os.path.join(self.data_dir, filename), record)
        self.written.append(filename)
        return filename

    def relationship(self, filename, from_file, to_file):
        write_relationship(self.data_dir, filename, from_file, to_file)
        self.written.append(filename)
        return filename
