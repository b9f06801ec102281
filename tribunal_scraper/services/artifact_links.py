"""Flattens history document links into one de-duplicated list."""

from typing import Iterable, List

from tribunal_scraper.models.history_entry import DocumentLink, HistoryEntry


class ArtifactLinkCollector:
    def collect(self, history: Iterable[HistoryEntry]) -> List[DocumentLink]:
        """Links in entry order, each url once.

        An entry's multi-link list is used when non-empty; its single
        ``primary_document`` only otherwise, so one document is never
        counted twice.
        """
        seen = set()
        out: List[DocumentLink] = []
        for entry in history:
            candidates = list(entry.document_links)
            if not candidates and entry.primary_document is not None:
                candidates = [entry.primary_document]
            for link in candidates:
                if link.url not in seen:
                    seen.add(link.url)
                    out.append(link)
        return out
