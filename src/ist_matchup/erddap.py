"""
Minimal ERDDAP access: tabledap/griddap CSV queries with retries.

Only what the matchup needs. Each request gets a timeout and is retried with
backoff on connection errors, timeouts and 5xx replies. A 404 that says the
query matched nothing is an empty result, not a failure.
"""
import time
from io import StringIO
from urllib.parse import quote

import pandas as pd
import requests

from ist_matchup.config import MAX_RETRIES, POLARWATCH_ERDDAP, REQUEST_TIMEOUT, RETRY_DELAYS
from ist_matchup.errors import DataUnavailable, MalformedResponse

HEADERS = {"User-Agent": "ist-matchup/0.1 (buoy-satellite matchup)"}
NO_RESULTS = "no matching results"


class ErddapClient:
    def __init__(self, base_url=POLARWATCH_ERDDAP, timeout=REQUEST_TIMEOUT,
                 max_retries=MAX_RETRIES, retry_delays=RETRY_DELAYS):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delays = tuple(retry_delays)

    # ─── URLs ────────────────────────────────────────────────────────────────
    def tabledap_url(self, dataset_id, query, ext="csv"):
        return f"{self.base_url}/tabledap/{dataset_id}.{ext}?{quote(query, safe=',&=')}"

    def griddap_url(self, dataset_id, query, ext="csv"):
        return f"{self.base_url}/griddap/{dataset_id}.{ext}?{quote(query, safe=',&=')}"

    def info_url(self, dataset_id):
        return f"{self.base_url}/info/{dataset_id}/index.csv"

    # ─── Transport ───────────────────────────────────────────────────────────
    def fetch_text(self, url, dataset_id=None, query=None):
        """
        GET ``url`` and return the body, or None when ERDDAP reports no matches.

        Raises DataUnavailable once retries are exhausted, or straight away on
        a 4xx that retrying will not fix.
        """
        last_error = None
        for attempt in range(self.max_retries):
            try:
                r = requests.get(url, timeout=self.timeout, headers=HEADERS)
                if r.status_code == 404 and NO_RESULTS in r.text:
                    return None
                if 400 <= r.status_code < 500:
                    raise DataUnavailable(
                        f"ERDDAP refused the query (HTTP {r.status_code}): "
                        f"{_error_message(r.text)}",
                        dataset_id=dataset_id, query=query,
                    )
                r.raise_for_status()
                return r.text
            except DataUnavailable:
                raise
            except (requests.exceptions.ConnectionError,
                    requests.exceptions.Timeout,
                    requests.exceptions.HTTPError) as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    delay = self.retry_delays[min(attempt, len(self.retry_delays) - 1)]
                    print(f"    Attempt {attempt + 1}/{self.max_retries} failed "
                          f"({type(e).__name__}), retrying in {delay}s...")
                    time.sleep(delay)

        raise DataUnavailable(
            f"ERDDAP unreachable after {self.max_retries} attempts: {last_error}",
            dataset_id=dataset_id, query=query,
        )

    def _read_csv(self, text, dataset_id, query, expect, units_row=True):
        try:
            df = pd.read_csv(StringIO(text), skiprows=[1] if units_row else None)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise MalformedResponse(f"Unparseable CSV from ERDDAP: {e}",
                                    dataset_id=dataset_id, query=query) from e
        missing = [c for c in (expect or []) if c not in df.columns]
        if missing:
            raise MalformedResponse(
                f"ERDDAP response lacks columns {missing} (got {list(df.columns)})",
                dataset_id=dataset_id, query=query,
            )
        return df

    # ─── Queries ─────────────────────────────────────────────────────────────
    def tabledap(self, dataset_id, variables, constraints=None):
        """
        Tabular query. ``constraints`` is a list of ERDDAP constraint strings,
        e.g. ``['buoy_id="300534062898720"', 'time>=2023-08-01T00:00:00Z']``.

        Returns a DataFrame with ``variables`` as columns (empty when nothing
        matched).
        """
        query = ",".join(variables)
        if constraints:
            query += "&" + "&".join(constraints)
        text = self.fetch_text(self.tabledap_url(dataset_id, query),
                               dataset_id=dataset_id, query=query)
        if text is None:
            return pd.DataFrame(columns=list(variables))
        return self._read_csv(text, dataset_id, query, expect=variables)

    def griddap(self, dataset_id, query, expect=None):
        """Gridded subset as a long-format DataFrame (one row per cell)."""
        text = self.fetch_text(self.griddap_url(dataset_id, query),
                               dataset_id=dataset_id, query=query)
        if text is None:
            return pd.DataFrame(columns=list(expect or []))
        return self._read_csv(text, dataset_id, query, expect=expect)

    def griddap_axis(self, dataset_id, axis):
        """All values of one griddap axis, in the dataset's stored order."""
        df = self.griddap(dataset_id, f"{axis}[0:1:last]", expect=[axis])
        if df.empty:
            raise MalformedResponse(f"Axis {axis!r} came back empty",
                                    dataset_id=dataset_id, query=axis)
        return df[axis]

    def info(self, dataset_id):
        """The dataset's metadata table (Row Type, Variable Name, Attribute Name, ...)."""
        text = self.fetch_text(self.info_url(dataset_id), dataset_id=dataset_id,
                               query="info")
        if text is None:
            raise DataUnavailable("No metadata for dataset", dataset_id=dataset_id)
        return self._read_csv(text, dataset_id, "info",
                              expect=["Variable Name", "Attribute Name", "Value"],
                              units_row=False)

    def variable_attribute(self, dataset_id, variable, attribute):
        """One attribute value (e.g. ``units``) from the dataset metadata, or None."""
        meta = self.info(dataset_id)
        hit = meta[(meta["Variable Name"] == variable)
                   & (meta["Attribute Name"] == attribute)]
        return None if hit.empty else hit["Value"].iloc[0]


def _error_message(text):
    """Pull the message out of an ERDDAP ``Error { ... message="..." }`` body."""
    marker = 'message="'
    if marker in text:
        return text.split(marker, 1)[1].split('"', 1)[0]
    return text.strip()[:200]
