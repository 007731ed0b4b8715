from dotenv import load_dotenv
import os
import tempfile

load_dotenv()


def _normalise_database_url(url: str) -> str:
    """Force the psycopg2 driver onto plain postgres URLs."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg2://" + url[len(prefix):]
    return url


class DBConfig():
    host: str = os.getenv("POSTGRES_HOST", "localhost")
    port: int = int(os.getenv("POSTGRES_PORT", 5432))
    user: str = os.getenv("POSTGRES_USER", "postgres")
    password: str = os.getenv("POSTGRES_PASSWORD", "password")
    database: str = os.getenv("POSTGRES_DB", "gtfs")
    database_url: str = os.getenv("DATABASE_URL", "")

    @property
    def url(self) -> str:
        if self.database_url:
            return _normalise_database_url(self.database_url)
        return (
            f"postgresql+psycopg2://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

db_config = DBConfig()

class FeedConfig():
    nsw_api_key: str = os.getenv("NSW_APIKEY", "")
    request_timeout: int = int(os.getenv("FEED_REQUEST_TIMEOUT", "300"))
    chunk_size: int = int(os.getenv("FEED_CHUNK_SIZE", str(1 << 20)))
    tmp_dir: str = os.getenv("GTFS_TMP_DIR", tempfile.gettempdir())
    show_progress: bool = os.getenv("GTFS_PROGRESS", "true").lower() == "true"

    # Home of the feed_meta table; not configurable because the model binds to it
    meta_schema: str = "gtfsmeta"

feed_config = FeedConfig()

class IngestionConfig():
    """Which configured datasets a run processes (empty means all)."""
    datasets: list = [d.strip() for d in os.getenv("GTFS_DATASETS", "").split(",") if d.strip()]

ingestion_config = IngestionConfig()
