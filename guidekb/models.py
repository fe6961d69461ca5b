"""Data model: reference entries and the persisted cache snapshot."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class EntryMetadata:
    """Optional annotations carried by dataset rows.

    Attributes:
        degree_equivalence: Note on how a degree maps between countries.
        grading_conversion: Note on converting grades (e.g. GPA ↔ percentage).
        country_origin: Country the question is asked from.
        tone: Register of the answer (``"formal"``, ``"friendly"`` …).
        cultural_sensitivity: Whether the answer touches culturally sensitive ground.
    """

    degree_equivalence: Optional[str] = None
    grading_conversion: Optional[str] = None
    country_origin: Optional[str] = None
    tone: Optional[str] = None
    cultural_sensitivity: bool = False

    @classmethod
    def from_dict(cls, raw) -> Optional["EntryMetadata"]:
        if not isinstance(raw, dict):
            return None
        return cls(
            degree_equivalence=_opt_str(raw.get("degree_equivalence")),
            grading_conversion=_opt_str(raw.get("grading_conversion")),
            country_origin=_opt_str(raw.get("country_origin")),
            tone=_opt_str(raw.get("tone")),
            cultural_sensitivity=bool(raw.get("cultural_sensitivity", False)),
        )

    def to_dict(self) -> dict:
        d = {"cultural_sensitivity": self.cultural_sensitivity}
        for key in ("degree_equivalence", "grading_conversion", "country_origin", "tone"):
            val = getattr(self, key)
            if val is not None:
                d[key] = val
        return d


@dataclass(frozen=True)
class Entry:
    """One question/answer item of the reference corpus.

    Attributes:
        question: The question text (required).
        answer: The answer text (required).
        context: Topic / grouping label, ``""`` when absent.
        source: Provenance label, ``""`` when absent.
        metadata: Optional :class:`EntryMetadata`.
    """

    question: str
    answer: str
    context: str = ""
    source: str = ""
    metadata: Optional[EntryMetadata] = None

    @classmethod
    def from_row(cls, row) -> "Entry":
        """Build an Entry from a dataset row dict.

        Raises:
            ValueError: if the row is not a dict or lacks a string
                ``question``/``answer``.
        """
        if not isinstance(row, dict):
            raise ValueError(f"row must be an object, got {type(row).__name__}")
        question = row.get("question")
        answer = row.get("answer")
        if not isinstance(question, str) or not isinstance(answer, str):
            raise ValueError("row is missing a string 'question' or 'answer'")
        return cls(
            question=question,
            answer=answer,
            context=_opt_str(row.get("context")) or "",
            source=_opt_str(row.get("source")) or "",
            metadata=EntryMetadata.from_dict(row.get("metadata")),
        )

    def to_dict(self) -> dict:
        d = {
            "question": self.question,
            "answer": self.answer,
            "context": self.context,
            "source": self.source,
        }
        if self.metadata is not None:
            d["metadata"] = self.metadata.to_dict()
        return d


@dataclass
class CacheSnapshot:
    """A persisted, versioned copy of the merged corpus.

    Attributes:
        format_version: Tag of the serializer that wrote the snapshot.
        captured_at: Unix timestamp of the write.
        override_count: Length of the verified override prefix of ``corpus``.
        corpus: Override entries followed by bulk entries in fetch order.
    """

    format_version: str
    captured_at: float
    override_count: int = 0
    corpus: list[Entry] = field(default_factory=list)

    @property
    def bulk_count(self) -> int:
        return len(self.corpus) - self.override_count


def _opt_str(val) -> Optional[str]:
    if val is None:
        return None
    return val if isinstance(val, str) else str(val)
