"""Single-page match finder.

Runs one extraction adapter and the similarity scorer against a loaded search
page and turns a source product into ranked candidate matches:

    INIT -> DETERMINE_MARKETPLACE -> LOCATE_CANDIDATES -> EXTRACT -> SCORE
         -> RANK -> THRESHOLD -> DONE

Any step can move to ERROR. Wall-clock time spent in each state is recorded
for diagnostics.
"""

import logging
import time
from collections.abc import Callable, Iterable
from enum import Enum

from bs4 import Tag

from ..config import MatchFinderSettings
from ..errors import CrossmatchError, NoCandidatesFound, NoMatcherForPage, NoValidCandidateData
from ..extractors.base import AdapterRegistry, ExtractionAdapter
from ..extractors.page import PageSnapshot
from ..models import CandidateRecord, MatchFinderResult, MatchResult, MatchTiming, ProductRecord
from .similarity import product_similarity, title_similarity

logger = logging.getLogger(__name__)


class MatchState(str, Enum):
    INIT = "init"
    DETERMINE_MARKETPLACE = "determine_marketplace"
    LOCATE_CANDIDATES = "locate_candidates"
    EXTRACT = "extract"
    SCORE = "score"
    RANK = "rank"
    THRESHOLD = "threshold"
    DONE = "done"
    ERROR = "error"


class StateTimer:
    """Records how long each state lasted, in milliseconds."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._started = clock()
        self._state: MatchState | None = None
        self._entered = self._started
        self.timing = MatchTiming()

    @property
    def state(self) -> MatchState | None:
        return self._state

    def enter(self, state: MatchState) -> None:
        now = self._clock()
        if self._state is not None:
            elapsed = (now - self._entered) * 1000
            self.timing.states[self._state.value] = self.timing.states.get(self._state.value, 0.0) + elapsed
        self._state = state
        self._entered = now

    def finish(self) -> MatchTiming:
        self.enter(self._state or MatchState.DONE)
        self.timing.total = (self._clock() - self._started) * 1000
        return self.timing


def score_candidate(
    source: ProductRecord,
    candidate: CandidateRecord,
    title_scorer: Callable[[str, str], float] = title_similarity,
) -> float:
    """Best of title similarity and the blended product similarity.

    Either signal on its own is enough to indicate a likely match, so the
    maximum is used rather than an average.
    """
    return max(title_scorer(source.title, candidate.title), product_similarity(source, candidate))


def score_candidates(
    source: ProductRecord,
    candidates: Iterable[CandidateRecord],
    title_scorer: Callable[[str, str], float] = title_similarity,
    search_url: str | None = None,
) -> list[MatchResult]:
    """Score candidates against the source and rank them.

    Ranking is descending by score; ties keep discovery order.

    Args:
        source: Product being matched.
        candidates: Candidates in discovery order.
        title_scorer: Title comparison, normally the adapter's.
        search_url: Page the candidates were read from.

    Returns:
        Ranked match results.
    """
    scored = [
        MatchResult.model_validate(
            {
                **candidate.model_dump(),
                "similarity_score": score_candidate(source, candidate, title_scorer),
                "source_product_id": source.product_id or None,
                "search_url": search_url,
            }
        )
        for candidate in candidates
    ]
    # sorted() is stable, so equal scores keep discovery order
    return sorted(scored, key=lambda match: match.similarity_score or 0.0, reverse=True)


def extract_candidates(
    adapter: ExtractionAdapter, elements: Iterable[Tag], page: PageSnapshot
) -> list[CandidateRecord]:
    """Run the adapter over every element, dropping listings that fail."""
    candidates = []
    for index, element in enumerate(elements):
        try:
            candidate = adapter.extract_candidate(element, page)
        except Exception as e:
            logger.debug(f"Dropping result {index} on {page.url}: {e}")
            continue
        if candidate is not None:
            candidates.append(candidate)
    return candidates


class MatchFinder:
    """Finds the listings on a search page that match a source product.

    Args:
        registry: Adapters to choose from.
        settings: Threshold and result cap; read on every run.
        clock: Monotonic clock in seconds, used for state timings.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        settings: MatchFinderSettings,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.registry = registry
        self.settings = settings
        self._clock = clock

    def find_matches(self, page: PageSnapshot, source: ProductRecord) -> MatchFinderResult:
        """Resolve the source product against the loaded search page.

        Args:
            page: Search result page of the target marketplace.
            source: Product the user is viewing.

        Returns:
            Result with `success` set when the best candidate reaches the
            configured minimum score. Failures are reported through `error`.
        """
        timer = StateTimer(self._clock)
        timer.enter(MatchState.INIT)
        ranked: list[MatchResult] = []

        try:
            timer.enter(MatchState.DETERMINE_MARKETPLACE)
            adapter = self.registry.get_adapter_for_page(page)
            if adapter is None:
                raise NoMatcherForPage(f"no matcher for marketplace at {page.url}")

            timer.enter(MatchState.LOCATE_CANDIDATES)
            elements = adapter.find_candidate_elements(page)
            if not elements:
                raise NoCandidatesFound(f"no search results found on {page.url}")

            timer.enter(MatchState.EXTRACT)
            candidates = extract_candidates(adapter, elements, page)
            if not candidates:
                raise NoValidCandidateData(
                    f"no valid candidates among {len(elements)} search results"
                )

            timer.enter(MatchState.SCORE)
            scored = score_candidates(
                source, candidates, adapter.compute_similarity_of_titles, search_url=page.url
            )

            timer.enter(MatchState.RANK)
            ranked = scored[: self.settings.max_results]

            timer.enter(MatchState.THRESHOLD)
            best = ranked[0]
            success = (best.similarity_score or 0.0) >= self.settings.min_similarity_score

            timer.enter(MatchState.DONE)
            logger.info(
                f"{adapter.marketplace.value}: {len(candidates)} candidates, "
                f"best score {best.similarity_score:.2f} for '{source.title}'"
            )
            return MatchFinderResult(
                success=success,
                match=best if success else None,
                all_matches=ranked,
                search_url=page.url,
                source_product=source,
                timing=timer.finish(),
            )

        except CrossmatchError as e:
            failed_state = timer.state
            timer.enter(MatchState.ERROR)
            logger.warning(f"Match finding failed in {failed_state.value if failed_state else 'init'}: {e}")
            return MatchFinderResult(
                success=False,
                all_matches=ranked,
                search_url=page.url,
                source_product=source,
                timing=timer.finish(),
                error=str(e),
            )

    def scan_page(self, page: PageSnapshot) -> list[CandidateRecord]:
        """Enumerate every candidate on the page without scoring.

        Raises:
            NoMatcherForPage: No adapter understands the page.
        """
        adapter = self.registry.get_adapter_for_page(page)
        if adapter is None:
            raise NoMatcherForPage(f"no matcher for marketplace at {page.url}")
        elements = adapter.find_candidate_elements(page)
        candidates = extract_candidates(adapter, elements, page)
        logger.info(f"Scanned {page.url}: {len(elements)} results, {len(candidates)} valid")
        return candidates
