from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from quiz.models import QuestionType, QuizCategory


class EnvelopeMessage(BaseModel):
    content: str


class EnvelopeChoice(BaseModel):
    message: EnvelopeMessage


class ChatCompletionEnvelope(BaseModel):
    """The part of the chat-completion response we rely on."""
    choices: List[EnvelopeChoice] = Field(min_length=1)

    @property
    def content(self):
        return self.choices[0].message.content


class GeneratedQuestion(BaseModel):
    question: str = Field(min_length=1, validation_alias=AliasChoices("question", "Frage"))
    answers: List[str] = Field(min_length=2, validation_alias=AliasChoices("answers", "Antworten"))
    correct_answer: str = Field(min_length=1, validation_alias=AliasChoices("correct_answer", "RichtigeAntwort"))

    @model_validator(mode="after")
    def correct_answer_in_answers(self):
        if self.correct_answer not in self.answers:
            raise ValueError(f"Correct answer '{self.correct_answer}' is not one of the answers")
        return self


class QuestionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    question_text: str = Field(validation_alias=AliasChoices("questionText", "question_text", "question"))
    answers: List[str] = Field(default_factory=list)
    correct_answer: Optional[str] = Field(default=None, validation_alias=AliasChoices("correctAnswer", "correct_answer"))
    difficulty: int = Field(default=1, ge=1, le=5)
    source: str = ""
    question_type: QuestionType = Field(default=QuestionType.MULTIPLE_CHOICE,
                                        validation_alias=AliasChoices("questionType", "question_type"))

    @field_validator("question_text")
    @classmethod
    def question_not_blank(cls, value):
        if not value.strip():
            raise ValueError("Question text must not be empty")
        return value.strip()

    @model_validator(mode="after")
    def answers_match_type(self):
        if self.correct_answer is None or not self.correct_answer.strip():
            raise ValueError("Every question needs a correct answer")

        if self.question_type == QuestionType.TEXT_INPUT:
            self.answers = []
            return self

        answers = [answer.strip() for answer in self.answers]
        if not 2 <= len(answers) <= 4:
            raise ValueError("A question needs between 2 and 4 answers")
        if any(not answer for answer in answers):
            raise ValueError("Answers must not be empty")
        if len(set(answers)) != len(answers):
            raise ValueError("Answers must be distinct")
        if self.correct_answer.strip() not in answers:
            raise ValueError("The correct answer must be one of the answers")

        self.answers = answers
        self.correct_answer = self.correct_answer.strip()
        return self


class QuizPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str = ""
    categories: List[QuizCategory] = Field(default_factory=list)
    is_public: bool = Field(default=True, validation_alias=AliasChoices("isPublic", "is_public"))
    questions: List[QuestionPayload] = Field(min_length=1)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value):
        if not value.strip():
            raise ValueError("Title must not be empty")
        return value.strip()

    @field_validator("categories")
    @classmethod
    def between_one_and_three_categories(cls, value):
        chosen = [category for category in value if category != QuizCategory.DAILY_QUIZ]
        if not 1 <= len(chosen) <= 3:
            raise ValueError("Choose between 1 and 3 categories")
        return list(dict.fromkeys(chosen))


def first_error_message(error: ValidationError):
    details = error.errors()[0]
    message = details["msg"]
    # pydantic prefixes messages raised from validators
    return message.removeprefix("Value error, ")
