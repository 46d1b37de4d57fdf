"""Display-locale projection of session snapshots."""
from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Mapping, Optional

from agents.collaborators import Translator
from config.settings import settings
from observability import log_event


logger = logging.getLogger(__name__)


class TranslationOverlay:
    """Translate read-only snapshots; degrade silently to the source text.

    The translator must keep every key and array length and change string
    leaves only. Any collaborator failure or structural drift discards the
    translation and the caller gets the snapshot it passed in.
    """

    def __init__(
        self,
        translator: Translator,
        *,
        source_locale: Optional[str] = None,
        supported_locales: Optional[Iterable[str]] = None,
    ) -> None:
        self._translator = translator
        self._source_locale = source_locale or settings.SOURCE_LOCALE
        locales = supported_locales if supported_locales is not None else settings.SUPPORTED_LOCALES
        self._supported = set(locales)

    @property
    def source_locale(self) -> str:
        return self._source_locale

    def project(self, snapshot: Mapping[str, Any], target_locale: str, *, session_id: str = "-") -> Mapping[str, Any]:
        if target_locale == self._source_locale:
            return snapshot
        if self._supported and target_locale not in self._supported:
            return self._degrade(snapshot, session_id, target_locale, "unsupported locale")
        try:
            translated = self._translator.translate(target_locale, copy.deepcopy(dict(snapshot)))
        except Exception as exc:  # noqa: BLE001
            return self._degrade(snapshot, session_id, target_locale, f"{type(exc).__name__}: {exc}")
        translated = _unwrap(translated, snapshot)
        mismatch = structure_mismatch(snapshot, translated)
        if mismatch is not None:
            return self._degrade(snapshot, session_id, target_locale, mismatch)
        return translated

    def _degrade(self, snapshot: Mapping[str, Any], session_id: str, locale: str, reason: str) -> Mapping[str, Any]:
        logger.warning("Translation to %s discarded: %s", locale, reason)
        log_event("translation_degraded", session_id, locale=locale, outcome="source", reason=reason)
        return snapshot


def _unwrap(translated: Any, source: Mapping[str, Any]) -> Any:  # Accept {"lang", "payload"} envelopes
    if isinstance(translated, Mapping) and "payload" in translated and "payload" not in source:
        return translated["payload"]
    return translated


def structure_mismatch(source: Any, candidate: Any, path: str = "$") -> Optional[str]:
    """Describe the first structural difference, or None when shapes agree.

    Keys and list lengths must match, string leaves must stay strings and all
    other leaves must be unchanged.
    """

    if isinstance(source, Mapping):
        if not isinstance(candidate, Mapping):
            return f"{path}: expected object"
        if set(source) != set(candidate):
            missing = sorted(str(key) for key in set(source) - set(candidate))
            extra = sorted(str(key) for key in set(candidate) - set(source))
            return f"{path}: keys differ (missing={missing}, extra={extra})"
        for key in source:
            found = structure_mismatch(source[key], candidate[key], f"{path}.{key}")
            if found is not None:
                return found
        return None
    if isinstance(source, (list, tuple)):
        if not isinstance(candidate, (list, tuple)):
            return f"{path}: expected array"
        if len(source) != len(candidate):
            return f"{path}: length {len(candidate)} != {len(source)}"
        for index, (left, right) in enumerate(zip(source, candidate)):
            found = structure_mismatch(left, right, f"{path}[{index}]")
            if found is not None:
                return found
        return None
    if isinstance(source, str):
        return None if isinstance(candidate, str) else f"{path}: expected string"
    if isinstance(source, bool) != isinstance(candidate, bool) or source != candidate:
        return f"{path}: non-string value changed"
    return None


__all__ = ["TranslationOverlay", "structure_mismatch"]
