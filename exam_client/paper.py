from dataclasses import dataclass, field
from typing import Dict, Tuple


OPTION_LETTERS = ("A", "B", "C", "D")


@dataclass(frozen=True)
class Question:
    text: str
    options: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "Question":
        options = {letter: data[f"option{letter}"] for letter in OPTION_LETTERS if data.get(f"option{letter}")}
        return cls(text=data["question"], options=options)


@dataclass(frozen=True)
class ExamPaper:
    id: int
    name: str
    code: str
    duration: int
    questions: Tuple[Question, ...] = ()

    @classmethod
    def from_api(cls, data: dict) -> "ExamPaper":
        return cls(
            id=data["id"],
            name=data.get("examName", ""),
            code=data.get("examCode", ""),
            duration=int(data["duration"]),
            questions=tuple(Question.from_api(q) for q in data.get("questions", [])),
        )


@dataclass(frozen=True)
class Student:
    name: str
    usn: str
