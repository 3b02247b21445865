"""
bucketfs Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the BUCKETFS_ENV_FILE environment variable
"""

import functools
import json
from pathlib import Path
from typing import Annotated, Any

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ENV_PREFIX = "bucketfs_"


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")

    elastic_password: Annotated[
        str | None,
        Field(
            description=(
                "Elasticsearch password. This the password for the 'elastic' user when Elastic xpack security is enabled"
            )
        ),
    ] = None

    elastic_host: Annotated[
        str | None,
        Field(
            description=(
                "Elasticsearch host. "
                "Default: https://localhost:9200 if elastic_password is set, http://localhost:9200 otherwise"
            )
        ),
    ] = None

    elastic_verify_ssl: Annotated[
        bool | None,
        Field(
            description=(
                "Elasticsearch verify SSL (only used if elastic_password is set). Default: True unless host is localhost)"
            ),
        ),
    ] = None

    cache_index: Annotated[
        str,
        Field(
            description="Elasticsearch index to store the file metadata cache in",
        ),
    ] = "bucketfs_cache"

    s3_host: Annotated[str | None, Field(description="S3 endpoint as host[:port], e.g. localhost:9000")] = None
    s3_tls: Annotated[bool, Field(description="Connect to the S3 endpoint over https")] = False
    s3_access_key: Annotated[str | None, Field()] = None
    s3_secret_key: Annotated[str | None, Field()] = None
    s3_region: Annotated[str | None, Field(description="Region of the bucket (optional)")] = None
    bucket: Annotated[str, Field(description="Name of the bucket presented as a filesystem")] = "bucketfs"

    scheme: Annotated[str, Field(description="URI scheme of the filesystem paths")] = "s3"

    bypass_cache: Annotated[
        bool,
        Field(
            description=(
                "Resolve file metadata with a HEAD request on the bucket instead of trusting the cache. "
                "Directories are always read from the cache. Slow, only useful for debugging."
            )
        ),
    ] = False

    public_domain: Annotated[
        str | None,
        Field(
            description=(
                "Domain (e.g. a CDN or CNAME) used for stable links. "
                "Default: the S3 endpoint followed by the bucket name"
            )
        ),
    ] = None
    use_https: Annotated[bool, Field(description="Use https for stable links")] = False

    torrent_paths: Annotated[
        list[str],
        NoDecode,
        Field(description="Path patterns that are delivered as torrents, e.g. videos/*"),
    ] = []
    presigned_paths: Annotated[
        list[str],
        NoDecode,
        Field(description="Path patterns that are delivered with presigned URLs, as timeout|pattern, e.g. 60|secret/*"),
    ] = []
    saveas_paths: Annotated[
        list[str],
        NoDecode,
        Field(description="Path patterns that are delivered with a forced download (Content-Disposition: attachment)"),
    ] = []
    presigned_timeout: Annotated[
        int,
        Field(description="Default lifetime of presigned URLs in seconds, if a pattern does not specify one"),
    ] = 60

    derivative_prefix: Annotated[
        str,
        Field(description="Key prefix of generated derivatives (e.g. image styles) that can be regenerated locally"),
    ] = "styles/"
    local_base_url: Annotated[
        str,
        Field(description="Base URL of the local service that regenerates missing derivatives"),
    ] = "http://localhost:5000"

    @field_validator("torrent_paths", "presigned_paths", "saveas_paths", mode="before")
    @classmethod
    def split_path_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            if value.strip().startswith("["):
                return json.loads(value)
            return [p.strip() for p in value.replace(",", "\n").splitlines() if p.strip()]
        return value

    @model_validator(mode="after")
    def set_ssl(self: Any) -> "Settings":
        if not self.elastic_host:
            self.elastic_host = ("https" if self.elastic_password else "http") + "://localhost:9200"
        if self.elastic_verify_ssl is None:
            self.elastic_verify_ssl = self.elastic_host not in {
                "http://localhost:9200",
                "https://localhost:9200",
            }
        return self

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    # Read the settings once to find the env_file, then load it without overriding real environment variables
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def s3_enabled() -> bool:
    settings = get_settings()
    return all([settings.s3_host, settings.s3_access_key, settings.s3_secret_key])


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
