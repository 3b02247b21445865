"""
External URLs for files in the bucket

Depending on the delivery policy, a file is linked with a stable URL ({domain}/{key}) or with
a URL signed by the object store. The policy consists of three independent, ordered lists of
path patterns (configured in bucketfs/config.py):

- torrent_paths: deliver the file as a torrent, e.g. "videos/*"
- presigned_paths: deliver the file with a time-limited signed URL, as "timeout|pattern",
  e.g. "60|secret/*". A pattern without a timeout uses the default presigned_timeout.
- saveas_paths: force the browser to download the file instead of displaying it

Within each list the first matching pattern wins. Patterns are shell-style wildcards
matched against the key, where * also matches slashes.
"""

import fnmatch
import logging
import re
from datetime import timedelta
from typing import Callable, NamedTuple
from urllib.parse import quote, urlencode

from bucketfs.cache.metadata import MetadataCache
from bucketfs.config import Settings, get_settings
from bucketfs.models import UrlSettings
from bucketfs.objectstorage.s3bucket import S3Bucket
from bucketfs.vfs.paths import key_basename, split_uri

UrlOverride = Callable[[UrlSettings, str], None]


class PathRule(NamedTuple):
    pattern: str
    regex: re.Pattern
    timeout: int | None = None

    def matches(self, key: str) -> bool:
        return self.regex.match(key) is not None


def compile_rule(pattern: str, timeout: int | None = None) -> PathRule:
    return PathRule(pattern, re.compile(fnmatch.translate(pattern)), timeout)


def first_match(rules: list[PathRule], key: str) -> PathRule | None:
    return next((rule for rule in rules if rule.matches(key)), None)


class DeliveryPolicy(NamedTuple):
    torrent: list[PathRule]
    presigned: list[PathRule]
    saveas: list[PathRule]

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "DeliveryPolicy":
        settings = settings or get_settings()
        return cls(
            torrent=[compile_rule(p) for p in settings.torrent_paths],
            presigned=[_presigned_rule(line, settings.presigned_timeout) for line in settings.presigned_paths],
            saveas=[compile_rule(p) for p in settings.saveas_paths],
        )


def _presigned_rule(line: str, default_timeout: int) -> PathRule:
    """
    Parse a presigned line of the form "timeout|pattern" or "pattern"
    """
    if "|" in line:
        timeout, pattern = line.split("|", 1)
        return compile_rule(pattern.strip(), int(timeout))
    return compile_rule(line.strip(), default_timeout)


class URLResolver:
    def __init__(
        self,
        bucket: S3Bucket,
        cache: MetadataCache,
        policy: DeliveryPolicy | None = None,
        settings: Settings | None = None,
        overrides: list[UrlOverride] | None = None,
    ):
        self.bucket = bucket
        self.cache = cache
        self.settings = settings or get_settings()
        self.policy = policy or DeliveryPolicy.from_settings(self.settings)
        self.overrides: list[UrlOverride] = list(overrides or [])

    def add_override(self, override: UrlOverride) -> None:
        """
        Register a function that can change the default delivery settings for a key before the policy is applied
        """
        self.overrides.append(override)

    @property
    def domain(self) -> str:
        if self.settings.public_domain:
            domain = self.settings.public_domain
            if "://" not in domain:
                domain = f"{'https' if self.settings.use_https else 'http'}://{domain}"
            return domain.rstrip("/")
        secure = self.settings.use_https or self.settings.s3_tls
        return f"{'https' if secure else 'http'}://{self.settings.s3_host}/{self.bucket.bucket}"

    def resolve(self, uri: str) -> str:
        """
        Get the external URL for the file at this uri
        """
        _, key = split_uri(uri)

        prefix = self.settings.derivative_prefix
        if prefix and key.startswith(prefix) and self.cache.read(uri) is None:
            # Let the local service generate the derivative, it will be in the bucket from then on
            return f"{self.settings.local_base_url.rstrip('/')}/bucketfs/{quote(key)}"

        url_settings = self.url_settings(key)

        if url_settings.torrent or url_settings.presigned or url_settings.response_headers:
            return self.bucket.sign_url(
                key,
                expires=timedelta(seconds=url_settings.timeout),
                torrent=url_settings.torrent,
                response_headers=url_settings.response_headers,
            )

        url = f"{self.domain}/{quote(key)}"
        if url_settings.query:
            url = f"{url}?{urlencode(url_settings.query)}"
        return url

    def url_settings(self, key: str) -> UrlSettings:
        """
        Determine the delivery settings for a key: defaults, then overrides, then the three policy lists
        """
        url_settings = UrlSettings(timeout=self.settings.presigned_timeout)
        for override in self.overrides:
            override(url_settings, key)

        if first_match(self.policy.torrent, key):
            url_settings.torrent = True

        rule = first_match(self.policy.presigned, key)
        if rule:
            url_settings.presigned = True
            url_settings.timeout = rule.timeout or self.settings.presigned_timeout

        if first_match(self.policy.saveas, key):
            url_settings.forced_saveas = True
            url_settings.response_headers = {
                **url_settings.response_headers,
                "response-content-disposition": f'attachment; filename="{key_basename(key)}"',
            }

        logging.debug(f"Delivery settings for {key}: {url_settings}")
        return url_settings
