"""Translation engine: turns extracted units into translated units with Qt threading."""

import logging

import requests

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from .errors import PathSyntaxError
from .json_path import path_steps
from .ollama_client import OllamaClient
from .project_model import ExtractedUnit, TranslatedUnit

log = logging.getLogger(__name__)


def field_for(unit: ExtractedUnit) -> str:
    """Kind of text a unit holds, as a prompt hint (``"dialog"``, ``"name"``, ...)."""
    try:
        steps = path_steps(unit.path)
    except PathSyntaxError:
        return ""
    if "parameters" in steps:
        arg_pos = steps.index("parameters") + 1
        if len(steps) > arg_pos + 1:
            return "choice"
        if arg_pos < len(steps) and steps[arg_pos] == 4:
            return "speaker_name"
        return "dialog"
    names = [s for s in steps if isinstance(s, str)]
    return names[-1] if names else ""


def translate_unit(client: OllamaClient, unit: ExtractedUnit) -> TranslatedUnit:
    """Translate one unit; a failure is recorded on the result, never raised."""
    try:
        result = client.translate(unit.text, field=field_for(unit))
        return TranslatedUnit.from_extracted(unit, result, origin=client.origin)
    except (ConnectionError, requests.RequestException, ValueError, OSError) as e:
        log.warning("%s %s: translation failed: %s", unit.source_file, unit.path, e)
        return TranslatedUnit.from_extracted(unit, "", origin=client.origin, error=str(e))


def translate_units(client: OllamaClient, units: list) -> list:
    """Translate units one after another in the calling thread."""
    return [translate_unit(client, unit) for unit in units]


class TranslationWorker(QObject):
    """Worker that runs translations in a background thread."""

    unit_done = pyqtSignal(object)          # TranslatedUnit
    item_processed = pyqtSignal(str)        # text preview (for progress tracking)
    finished = pyqtSignal()
    error = pyqtSignal(str, str)            # "source_file:path", error_message

    def __init__(self, client: OllamaClient, units: list):
        super().__init__()
        self.client = client
        self.units = units
        self.results = []
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    def run(self):
        """Process all units in this worker's chunk."""
        for unit in self.units:
            if self._cancelled:
                break
            self.item_processed.emit(unit.text[:50].replace("\n", " "))

            result = translate_unit(self.client, unit)
            self.results.append(result)
            if result.error is not None:
                self.error.emit(f"{unit.source_file}:{unit.path}", result.error)
            self.unit_done.emit(result)

        self.finished.emit()


class TranslationEngine(QObject):
    """Manages parallel translation workers and threads."""

    progress = pyqtSignal(int, int, str)    # current, total, current_text
    unit_done = pyqtSignal(object)
    finished = pyqtSignal()
    error = pyqtSignal(str, str)

    def __init__(self, client: OllamaClient, num_workers: int = 2, parent=None):
        super().__init__(parent)
        self.client = client
        self.num_workers = num_workers
        self.results = []  # TranslatedUnit list in input order, set when finished
        self._threads = []
        self._workers = []
        self._total = 0
        self._progress_count = 0
        self._finished_workers = 0

    @property
    def is_running(self) -> bool:
        return any(t.isRunning() for t in self._threads)

    def translate_batch(self, units: list):
        """Start translating *units* with parallel workers."""
        if self.is_running:
            return
        self.results = []
        if not units:
            self.finished.emit()
            return

        self._total = len(units)
        self._progress_count = 0
        self._finished_workers = 0
        self._threads = []
        self._workers = []

        # Split into N sequential chunks (keeps a file's units together)
        n = min(max(self.num_workers, 1), len(units))
        for chunk in self._split_chunks(units, n):
            thread = QThread()
            worker = TranslationWorker(self.client, chunk)
            worker.moveToThread(thread)

            thread.started.connect(worker.run)
            worker.item_processed.connect(self._on_item_processed)
            worker.unit_done.connect(self.unit_done.emit)
            worker.error.connect(self.error.emit)
            worker.finished.connect(self._on_worker_finished)

            self._threads.append(thread)
            self._workers.append(worker)

        for thread in self._threads:
            thread.start()

    def cancel(self):
        """Cancel all running workers."""
        for worker in self._workers:
            worker.cancel()

    def _on_item_processed(self, text: str):
        """Track global progress across all workers."""
        self._progress_count += 1
        self.progress.emit(self._progress_count, self._total, text)

    def _on_worker_finished(self):
        """Track worker completion; emit finished when all done."""
        self._finished_workers += 1
        if self._finished_workers >= len(self._workers):
            for thread in self._threads:
                thread.quit()
                thread.wait()
            self.results = [r for worker in self._workers for r in worker.results]
            self._threads = []
            self._workers = []
            self.finished.emit()

    @staticmethod
    def _split_chunks(items: list, n: int) -> list:
        """Split a list into n roughly equal sequential chunks."""
        if n <= 1:
            return [items]
        k, remainder = divmod(len(items), n)
        chunks = []
        start = 0
        for i in range(n):
            size = k + (1 if i < remainder else 0)
            chunks.append(items[start:start + size])
            start += size
        return chunks
