import json
import logging
import re
import time
from typing import List

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from langchain_core.prompts import PromptTemplate
from pydantic import TypeAdapter, ValidationError

from accounts.emails import send_email
from accounts.models import UserRole
from quiz.exceptions import ExternalServiceFailure, MalformedResponse
from quiz.schemas import ChatCompletionEnvelope, GeneratedQuestion

logger = logging.getLogger("trivify")


example_response_json = """[
  {
    "question": "Which planet is known as the red planet?",
    "answers": ["Venus", "Mars", "Jupiter", "Mercury"],
    "correct_answer": "Mars"
  }
]"""


daily_quiz_template = """
        You are an expert quiz author. Create {number_of_questions} varied trivia questions
        for the category "{category}".

        Format the response like the RESPONSE JSON below, a JSON array with exactly
        {number_of_questions} objects.
        RESPONSE JSON = {response_json}

        The answers:
        - must not start with labels such as A, B, C or D
        - must contain the correct answer exactly as it is written in "correct_answer"

        The questions:
        - have four answers with only one being correct
        - get harder from the first to the last question
        - are clearly worded, realistic and up to date
        - are not repeated and have no identical answers

        Return **only** the JSON array, without markdown, explanations or any other characters.
    """

FENCE_PATTERN = re.compile(r"```json|```")
THINK_PATTERN = re.compile(r"<think>.*?</think>\s*", re.DOTALL)

generated_questions_adapter = TypeAdapter(List[GeneratedQuestion])


def build_prompt(category):
    prompt = PromptTemplate(
        template=daily_quiz_template,
        input_variables=["number_of_questions", "category", "response_json"],
    )
    return prompt.format(number_of_questions=settings.AI_QUESTION_COUNT, category=category,
                         response_json=example_response_json)


def execute_llm_prompt(prompt):
    """POST the prompt to the chat-completion endpoint and return the reply text."""
    response = requests.post(
        settings.AI_API_BASE_URL,
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {settings.AI_API_KEY}",
        },
        json={
            "model": settings.AI_API_MODEL,
            "messages": [{"role": "user", "content": prompt}],
        },
        timeout=settings.AI_API_TIMEOUT,
    )
    response.raise_for_status()

    try:
        envelope = ChatCompletionEnvelope.model_validate_json(response.text)
    except ValidationError as e:
        raise MalformedResponse(f"Unexpected response shape: {e.error_count()} error(s)", raw_text=response.text)

    return envelope.content


def clean_response(content):
    content = FENCE_PATTERN.sub("", content).strip()
    content = THINK_PATTERN.sub("", content).strip()

    if not content.startswith("["):
        raise MalformedResponse("Content does not start with '[' after cleaning", raw_text=content)

    return content


def parse_questions(content):
    cleaned = clean_response(content)

    try:
        items = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Invalid JSON: {e.msg}", raw_text=cleaned)

    try:
        return generated_questions_adapter.validate_python(items)
    except ValidationError as e:
        raise MalformedResponse(f"Invalid question list: {e.errors()[0]['msg']}", raw_text=cleaned)


def notify_admins_of_failure(error_message, raw_text):
    User = get_user_model()

    for admin in User.objects.filter(role=UserRole.ADMIN):
        send_email(admin.email, "Daily quiz generation failed", "failed-generation-daily", {
            "adminName": admin.username,
            "generationDate": timezone.localtime().strftime("%Y-%m-%d %H:%M"),
            "errorMessage": error_message,
            "response": raw_text,
        })


def fetch_quiz_questions(category):
    """
    Ask the generation endpoint for a list of questions about ``category``.

    Transport errors and unusable replies are retried up to
    ``AI_MAX_ATTEMPTS`` times with exponential backoff. When every attempt
    fails the admins are notified and ``ExternalServiceFailure`` is raised.
    """
    prompt = build_prompt(category)
    max_attempts = settings.AI_MAX_ATTEMPTS
    error_message = ""
    raw_text = ""

    for attempt in range(1, max_attempts + 1):
        try:
            questions = parse_questions(execute_llm_prompt(prompt))

        except MalformedResponse as e:
            error_message = str(e)
            raw_text = e.raw_text
            logger.warning(f"Attempt {attempt}/{max_attempts}: malformed quiz response: {e}")

        except requests.RequestException as e:
            error_message = str(e)
            logger.warning(f"Attempt {attempt}/{max_attempts}: quiz request failed: {e}")

        else:
            logger.info(f"Fetched {len(questions)} questions for category {category}")
            return questions

        if attempt < max_attempts:
            time.sleep(settings.AI_BACKOFF_SECONDS * 2 ** (attempt - 1))

    logger.error(f"Giving up on quiz generation after {max_attempts} attempts: {error_message}")
    notify_admins_of_failure(error_message, raw_text)
    raise ExternalServiceFailure(f"No valid quiz after {max_attempts} attempts: {error_message}")
