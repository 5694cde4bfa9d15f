"""
Session state for one review session, and the transitions between phases.

    IDLE -> EXTRACTING -> EXTRACTED -> SUBMITTING -> SUBMITTED
               |                          |
               +-(failure)-> IDLE         +-(failure)-> EXTRACTED

SUBMITTED keeps the form and allows resubmission. `clear` goes to IDLE from
anywhere. Every transition returns a new SessionState; nothing is mutated.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Literal

from .errors import IntakeError
from .extraction import ExtractionRecord
from .intake import SelectedFile, is_pdf
from .review import apply_edit

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class SessionState:
    phase: Phase = Phase.IDLE
    selected_file: SelectedFile | None = None
    extracted_record: ExtractionRecord | None = None
    current_record: ExtractionRecord | None = None

    @property
    def is_extracting(self) -> bool:
        return self.phase is Phase.EXTRACTING

    @property
    def is_submitting(self) -> bool:
        return self.phase is Phase.SUBMITTING


@dataclass(frozen=True)
class Notice:
    level: Literal["success", "error"]
    message: str


def select_file(state: SessionState, file: SelectedFile | None) -> SessionState:
    if file is None or not is_pdf(file.media_type):
        if file is not None:
            logger.info("Ignoring non-PDF file %s (%s)", file.name, file.media_type)
        return state
    if state.is_extracting:
        # the transport has no cancellation, so the running extraction wins
        logger.info("Extraction in flight; ignoring %s", file.name)
        return state
    return SessionState(phase=Phase.EXTRACTING, selected_file=file)


def extraction_succeeded(state: SessionState, record: ExtractionRecord) -> SessionState:
    return dataclasses.replace(state, phase=Phase.EXTRACTED, extracted_record=record, current_record=record)


def extraction_failed(state: SessionState) -> SessionState:
    return SessionState()


def edit_field(state: SessionState, field: str, value: str | None) -> SessionState:
    if state.current_record is None or state.is_submitting:
        return state
    updated = apply_edit(state.current_record, field, value)
    if updated == state.current_record:
        return state
    return dataclasses.replace(state, current_record=updated)


def revert_edits(state: SessionState) -> SessionState:
    if state.extracted_record is None or state.is_submitting:
        return state
    return dataclasses.replace(state, current_record=state.extracted_record)


def begin_submission(state: SessionState) -> SessionState:
    if state.phase not in (Phase.EXTRACTED, Phase.SUBMITTED):
        return state
    if state.current_record is None or state.selected_file is None:
        return state
    return dataclasses.replace(state, phase=Phase.SUBMITTING)


def submission_succeeded(state: SessionState) -> SessionState:
    return dataclasses.replace(state, phase=Phase.SUBMITTED)


def submission_failed(state: SessionState) -> SessionState:
    return dataclasses.replace(state, phase=Phase.EXTRACTED)


def clear(state: SessionState) -> SessionState:
    return SessionState()


class Orchestrator:
    """
    Sequences intake -> extraction -> review -> submission for one session.
    Collaborators are plain callables so the UI, the CLI and the tests can
    each wire their own.
    """
    def __init__(
        self,
        extractor: Callable[[bytes], ExtractionRecord],
        submitter: Callable[[ExtractionRecord, str], None],
    ):
        self.extractor = extractor
        self.submitter = submitter

    def on_file_selected(self, state: SessionState, file: SelectedFile | None) -> SessionState:
        return select_file(state, file)

    def run_extraction(self, state: SessionState) -> tuple[SessionState, Notice | None]:
        if not state.is_extracting or state.selected_file is None:
            return state, None

        try:
            record = self.extractor(state.selected_file.data)
        except IntakeError as e:
            logger.error("Extraction failed for %s: %s", state.selected_file.name, e)
            return extraction_failed(state), Notice("error", str(e) or "Failed to extract data from PDF")
        except Exception:
            # the session must never be left in EXTRACTING
            logger.exception("Unexpected failure extracting %s", state.selected_file.name)
            return extraction_failed(state), Notice("error", "Failed to extract data from PDF")

        return extraction_succeeded(state, record), Notice("success", "Data extracted successfully!")

    def on_submit(self, state: SessionState) -> tuple[SessionState, Notice | None]:
        started = begin_submission(state)
        if started is state:
            return state, None

        # begin_submission only moves on when both are present
        record, filename = started.current_record, started.selected_file.name
        try:
            self.submitter(record, filename)
        except IntakeError as e:
            logger.error("Submission failed for %s: %s", filename, e)
            return submission_failed(started), Notice("error", "Submission failed. Please try again.")
        except Exception:
            logger.exception("Unexpected failure submitting %s", filename)
            return submission_failed(started), Notice("error", "Submission failed. Please try again.")

        return submission_succeeded(started), Notice("success", "Data submitted successfully.")
