"""
Dictionary Validator: the boundary to the online dictionary.

Two call sites on purpose, with opposite fallbacks when the oracle fails:
* `validate_all` / `is_valid` (authoritative, used by MESS IT UP): a failed lookup counts as INVALID
* `preview_all` (read path, used by clients to colour words): a failed lookup counts as VALID
Failed lookups are never cached, so the next call asks the oracle again.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

import requests

from src.core.config import config
from src.core.exceptions import ExternalServiceError
from src.db.repository import WordCache

logger = logging.getLogger(__name__)

# Automated dictionaries are unreliable for very short words, this list is the final say for 2 letters.
TWO_LETTER_WORDS = frozenset(
    """
    AA AB AD AE AG AH AI AL AM AN AR AS AT AW AX AY
    BA BE BI BO BY
    CH DA DE DI DO
    EA ED EE EF EH EL EM EN ER ES ET EW EX
    FA FE FY
    GI GO GU
    HA HE HI HM HO
    ID IF IN IO IS IT
    JA JO
    KA KI KO KY
    LA LI LO
    MA ME MI MM MO MU MY
    NA NE NO NU
    OB OD OE OF OH OI OK OM ON OP OR OS OW OX OY
    PA PE PI PO
    QI
    RE
    SH SI SO ST
    TA TE TI TO
    UG UH UM UN UP UR US UT
    WE WO
    XI XU
    YA YE YO
    ZA ZO
    """.split()
)


class DictionaryValidator:
    """Cached, batched word lookups against the online dictionary."""

    def __init__(
        self,
        cache: WordCache,
        api_url: str = config.DICTIONARY_API_URL,
        timeout: float = config.DICTIONARY_TIMEOUT_SECONDS,
        max_workers: int = config.DICTIONARY_WORKERS,
    ) -> None:
        self.cache = cache
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_workers = max_workers

    def is_valid(self, word: str) -> bool:
        """Authoritative verdict for a single word."""
        return self.validate_all([word])[word.strip().upper()]

    def validate_all(self, words: Iterable[str]) -> dict[str, bool]:
        """Authoritative verdicts (oracle failure -> invalid). Keys are upper case."""
        return self._resolve(words, on_error=False)

    def preview_all(self, words: Iterable[str]) -> dict[str, bool]:
        """Lenient verdicts for the read path (oracle failure -> valid). Keys are upper case."""
        return self._resolve(words, on_error=True)

    def lookup(self, word: str) -> bool:
        """
        Ask the oracle about one word.
        ----

        200 means the word exists, 404 that it does not. Anything else (timeouts, 5xx, ...) raises ExternalServiceError.
        """
        try:
            response = requests.get(f"{self.api_url}/{word.lower()}", timeout=self.timeout)
        except requests.RequestException as error:
            raise ExternalServiceError(f"Dictionary lookup for {word!r} failed: {error}") from error

        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise ExternalServiceError(
            f"Dictionary lookup for {word!r} returned HTTP {response.status_code}."
        )

    def _resolve(self, words: Iterable[str], on_error: bool) -> dict[str, bool]:
        results: dict[str, bool] = {}
        pending: list[str] = []
        for word in {w.strip().upper() for w in words}:
            if len(word) < 2 or not word.isalpha():
                results[word] = False
            elif len(word) == 2:
                results[word] = word in TWO_LETTER_WORDS
            elif (cached := self.cache.get_word(word)) is not None:
                results[word] = cached
            else:
                pending.append(word)

        if not pending:
            return results

        # lookups run in parallel, the cache is only touched from this thread
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(pending))) as pool:
            futures = {word: pool.submit(self.lookup, word) for word in pending}

        for word, future in futures.items():
            try:
                verdict = future.result()
            except ExternalServiceError as error:
                logger.warning("%s Falling back to %s.", error, "valid" if on_error else "invalid")
                results[word] = on_error
                continue
            self.cache.set_word(word, verdict)
            results[word] = verdict
        return results
