import os

from dotenv import load_dotenv

# Try to load .env from multiple locations
for env_path in [".env", os.path.expanduser("~/.env")]:
    if os.path.exists(env_path):
        load_dotenv(dotenv_path=env_path)
        break
else:
    load_dotenv()  # fallback to default behavior

BASE_DIR = os.path.abspath(os.getenv("PROPERTY_MAPPER_WORK_DIR", "."))
LOCAL_DIR = os.path.dirname(__file__)

LOGS_DIR = os.getenv("PROPERTY_MAPPER_LOG_DIR", os.path.join(BASE_DIR, "logs"))
SCHEMAS_DIR = os.getenv("PROPERTY_MAPPER_SCHEMAS_DIR", os.path.join(BASE_DIR, "schemas"))
BUNDLED_SCHEMAS_DIR = os.path.join(LOCAL_DIR, "schemas")

SCHEMA_MANIFEST_URL = os.getenv(
    "SCHEMA_MANIFEST_URL", "https://lexicon.elephant.xyz/json-schemas/schema-manifest.json"
)

DEFAULT_IPFS_GATEWAYS = [
    "https://ipfs.io/ipfs/",
    "https://gateway.pinata.cloud/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
    "https://dweb.link/ipfs/",
    "https://ipfs.infura.io/ipfs/",
]
IPFS_GATEWAYS = [
    g.strip() for g in os.getenv("IPFS_GATEWAYS", ",".join(DEFAULT_IPFS_GATEWAYS)).split(",") if g.strip()
]

REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "10"))

DEFAULT_COUNTY_DATA_GROUP_CID = os.getenv(
    "COUNTY_DATA_GROUP_CID", "bafkreigsqoofbrni7fye3dtsjuvtwv4nmmdzrppvblhzlsq3xpucn5daeq"
)

# Work directory layout shared by every county script
INPUT_HTML = "input.html"
INPUT_JSON = "input.json"
UNNORMALIZED_ADDRESS_FILE = "unnormalized_address.json"
PROPERTY_SEED_FILE = "property_seed.json"
OWNERS_DIRNAME = "owners"
DATA_DIRNAME = "data"

OWNER_DATA_FILE = "owner_data.json"
STRUCTURE_DATA_FILE = "structure_data.json"
UTILITIES_DATA_FILE = "utilities_data.json"
LAYOUT_DATA_FILE = "layout_data.json"
