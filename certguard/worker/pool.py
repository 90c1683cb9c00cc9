from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor

from certguard.analysis.analyzer import FraudAnalyzer
from certguard.analysis.models import FraudAnalysisResult
from certguard.documents.models import RawDocument
from certguard.logging.logger import Log


class AnalysisPool:
    """Runs independent document analyses on a bounded thread pool.

    Each call gets its own pipeline context, so a slow OCR run on one
    document never holds up or touches another.
    """

    def __init__(self, analyzer: FraudAnalyzer, max_workers: int = 4) -> None:
        self._analyzer = analyzer
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="certguard-analysis"
        )

    def submit(
        self, document: RawDocument, expected_name: str | None = None
    ) -> Future[FraudAnalysisResult]:
        """Queue one analysis; the returned future can be cancelled until it starts."""
        return self._executor.submit(self._analyzer.analyze, document, expected_name)

    def analyze_all(
        self,
        documents: Sequence[RawDocument],
        expected_name: str | None = None,
    ) -> list[FraudAnalysisResult]:
        """Analyze documents concurrently; results keep the input order."""
        futures = [self.submit(document, expected_name) for document in documents]
        Log.info(f"Queued {len(futures)} document(s) for analysis")
        return [future.result() for future in futures]

    def shutdown(self, cancel_pending: bool = False) -> None:
        self._executor.shutdown(wait=True, cancel_futures=cancel_pending)

    def __enter__(self) -> "AnalysisPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown(cancel_pending=exc_info[0] is not None)
