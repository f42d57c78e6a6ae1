"""
Client for the CCDB calibration store.

Any object with a `fetch(key)` method returning a histogram-like object (or
None when nothing is found) can stand in for CcdbManager.
"""

import io
import logging
import time

import requests
import uproot

from lf_tpc_pid.pid_constants import CCDB_OBJECT_NAME, CCDB_URL

logger = logging.getLogger(__name__)


def now_ms():
    return int(time.time() * 1000)


class CcdbManager:
    def __init__(self, url=CCDB_URL, timestamp=-1, caching=True, created_not_after=None, timeout=30.0):
        self.url = url.rstrip("/")
        self.timestamp = timestamp
        self.caching = caching
        self.created_not_after = now_ms() if created_not_after is None else created_not_after
        self.timeout = timeout
        self._cache = {}

    def query_timestamp(self):
        # Non-positive timestamps mean "valid now"
        return self.timestamp if self.timestamp > 0 else now_ms()

    def object_url(self, key):
        return f"{self.url}/{key.strip('/')}/{self.query_timestamp()}"

    def fetch(self, key):
        """
        Retrieve the object stored under `key`.

        Returns:
            the uproot model of the stored object, or None if the request
            failed or the payload does not hold a ccdb_object
        """
        if self.caching and key in self._cache:
            logger.debug("CCDB cache hit for %s", key)
            return self._cache[key]

        url = self.object_url(key)
        logger.info("Fetching %s", url)
        headers = {"If-Not-After": str(self.created_not_after)}
        try:
            response = requests.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("CCDB request for %s failed: %s", key, e)
            return None
        if response.status_code != 200:
            logger.error("CCDB returned status %s for %s", response.status_code, key)
            return None

        try:
            with uproot.open(io.BytesIO(response.content)) as f:
                obj = f[CCDB_OBJECT_NAME]
        except (KeyError, ValueError, OSError, uproot.deserialization.DeserializationError) as e:
            logger.error("Could not read %s from CCDB payload of %s: %s", CCDB_OBJECT_NAME, key, e)
            return None

        if self.caching:
            self._cache[key] = obj
        return obj
