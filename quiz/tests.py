import json
from datetime import timedelta
from unittest.mock import patch, MagicMock

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.utils import timezone

from accounts.models import UserRole, UserStatus
from accounts.tokens import issue_auth_token
from quiz.daily import (DailyQuizState, EXCLUDED_DAILY_CATEGORIES, build_daily_quiz, pick_daily_category,
                        run_daily_quiz_sweep)
from quiz.exceptions import DailyQuizConflict, ExternalServiceFailure, GenerationFailure, MalformedResponse
from quiz.llm_integration import build_prompt, clean_response, fetch_quiz_questions, generated_questions_adapter, \
    parse_questions
from quiz.models import Question, Quiz, QuizCategory, QuizRating, QuizResult
from quiz.services import grade_answer
from quiz.tasks import generate_daily_quiz

User = get_user_model()


generated_questions_json = """[
  {"question": "Which planet is known as the red planet?",
   "answers": ["Venus", "Mars", "Jupiter", "Mercury"],
   "correct_answer": "Mars"},
  {"question": "What is H2O?",
   "answers": ["Water", "Salt", "Gold", "Air"],
   "correct_answer": "Water"}
]"""

german_questions_json = """[
  {"Frage": "Wie heisst die Hauptstadt von Frankreich?",
   "Antworten": ["Paris", "Berlin", "Rom", "Madrid"],
   "RichtigeAntwort": "Paris"}
]"""

wrong_answer_questions_json = """[
  {"question": "What is H2O?",
   "answers": ["Salt", "Gold", "Air"],
   "correct_answer": "Water"}
]"""

capitals_quiz = {
    "title": "Capitals",
    "description": "European capitals",
    "categories": ["GEOGRAPHY"],
    "questions": [
        {"questionText": "Capital of France?", "answers": ["Paris", "Berlin", "Rome"], "correctAnswer": "Paris"},
    ],
}


def auth_header(user):
    return {"HTTP_AUTHORIZATION": f"Bearer {issue_auth_token(user)}"}


def post_json(client, url, data=None, **extra):
    return client.post(url, data=json.dumps(data or {}), content_type="application/json", **extra)


def put_json(client, url, data=None, **extra):
    return client.put(url, data=json.dumps(data or {}), content_type="application/json", **extra)


def completion_response(content):
    response = MagicMock()
    response.text = json.dumps({"choices": [{"message": {"role": "assistant", "content": content}}]})
    response.raise_for_status.return_value = None
    return response


class GradeAnswerTestCase(TestCase):

    def test_none_is_never_correct(self):
        self.assertFalse(grade_answer(None, "Paris"))
        self.assertFalse(grade_answer("Paris", None))

    def test_whitespace_and_case_are_ignored(self):
        self.assertTrue(grade_answer(" paris ", "Paris"))
        self.assertTrue(grade_answer("PARIS", "paris"))

    def test_wrong_answer(self):
        self.assertFalse(grade_answer("Berlin", "Paris"))

    def test_only_letter_case_is_folded(self):
        self.assertFalse(grade_answer("STRASSE", "Stra\u00dfe"))
        self.assertTrue(grade_answer("STRA\u00dfE", "stra\u00dfe"))


class QuizTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.creator = User.objects.create_user(username="creator", email="creator@gmail.com",
                                               password="password123", status=UserStatus.ACTIVE)
        cls.player = User.objects.create_user(username="player", email="player@gmail.com",
                                              password="password123", status=UserStatus.ACTIVE)
        cls.test_quiz = Quiz.objects.create(title="test title", creator=cls.creator,
                                            categories=[QuizCategory.HISTORY])
        cls.question_one = Question.objects.create(quiz=cls.test_quiz, position=1,
                                                   question_text="When did the Berlin wall fall?",
                                                   answers=["1989", "1990", "1961"], correct_answer="1989")

    def setUp(self):
        self.client = Client()

    def test_create_quiz_and_submit_answer(self):
        response = post_json(self.client, reverse("create_quiz"), capitals_quiz,
                             **auth_header(QuizTestCase.creator))
        self.assertEqual(response.status_code, 201)

        body = response.json()
        self.assertEqual(body["title"], "Capitals")
        self.assertEqual(body["categories"], ["GEOGRAPHY"])
        question_id = body["questions"][0]["id"]

        response = post_json(self.client, reverse("submit_answer", kwargs={"quiz_id": body["id"]}),
                             {"questionId": question_id, "answer": "paris"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "correct": True,
            "userAnswer": "paris",
            "correctAnswer": "Paris",
            "question": "Capital of France?",
            "answers": ["Paris", "Berlin", "Rome"],
        })

    def test_submit_null_answer(self):
        response = post_json(self.client, reverse("submit_answer", kwargs={"quiz_id": QuizTestCase.test_quiz.pk}),
                             {"questionId": QuizTestCase.question_one.pk, "answer": None})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["correct"])

    def test_submit_unknown_question(self):
        response = post_json(self.client, reverse("submit_answer", kwargs={"quiz_id": QuizTestCase.test_quiz.pk}),
                             {"questionId": 9999, "answer": "1989"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Question not found")

    def test_create_quiz_requires_token(self):
        response = post_json(self.client, reverse("create_quiz"), capitals_quiz)
        self.assertEqual(response.status_code, 401)

    def test_create_quiz_correct_answer_not_in_answers(self):
        payload = json.loads(json.dumps(capitals_quiz))
        payload["questions"][0]["correctAnswer"] = "Madrid"

        response = post_json(self.client, reverse("create_quiz"), payload, **auth_header(QuizTestCase.creator))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "The correct answer must be one of the answers")
        self.assertFalse(Quiz.objects.filter(title="Capitals").exists())

    def test_create_quiz_validation_errors(self):
        headers = auth_header(QuizTestCase.creator)

        payload = dict(capitals_quiz, title="   ")
        response = post_json(self.client, reverse("create_quiz"), payload, **headers)
        self.assertEqual(response.json()["error"], "Title must not be empty")

        payload = dict(capitals_quiz, categories=["SCIENCE", "HISTORY", "MUSIC", "SPORTS"])
        response = post_json(self.client, reverse("create_quiz"), payload, **headers)
        self.assertEqual(response.json()["error"], "Choose between 1 and 3 categories")

        payload = dict(capitals_quiz, questions=[
            {"questionText": "Capital of France?", "answers": ["Paris", "Paris"], "correctAnswer": "Paris"},
        ])
        response = post_json(self.client, reverse("create_quiz"), payload, **headers)
        self.assertEqual(response.json()["error"], "Answers must be distinct")

    def test_free_text_question_needs_no_answers(self):
        payload = dict(capitals_quiz, questions=[
            {"questionText": "Capital of France?", "correctAnswer": "Paris", "questionType": "TEXT_INPUT"},
        ])
        response = post_json(self.client, reverse("create_quiz"), payload, **auth_header(QuizTestCase.creator))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["questions"][0]["answers"], [])

    def test_quiz_detail_is_masked(self):
        response = self.client.get(reverse("quiz_detail", kwargs={"quiz_id": QuizTestCase.test_quiz.pk}))
        self.assertEqual(response.status_code, 200)

        body = response.json()
        self.assertEqual(body["questions"][0]["correctAnswer"], "")
        self.assertNotIn("email", body["creator"])

    def test_quiz_to_edit_is_unmasked_for_creator(self):
        url = reverse("quiz_to_edit", kwargs={"quiz_id": QuizTestCase.test_quiz.pk})

        response = self.client.get(url, **auth_header(QuizTestCase.creator))
        self.assertEqual(response.json()["questions"][0]["correctAnswer"], "1989")

        response = self.client.get(url, **auth_header(QuizTestCase.player))
        self.assertEqual(response.status_code, 403)

    def test_quiz_list_excludes_todays_daily_quiz(self):
        Quiz.objects.create(title="Daily", creator=QuizTestCase.creator,
                            categories=[QuizCategory.DAILY_QUIZ, QuizCategory.MUSIC], date=timezone.localdate())
        QuizRating.objects.create(quiz=QuizTestCase.test_quiz, user=QuizTestCase.player, rating=4)

        quizzes = self.client.get(reverse("quiz_list")).json()
        self.assertEqual([quiz["title"] for quiz in quizzes], ["test title"])
        self.assertEqual(quizzes[0]["averageRating"], 4.0)
        self.assertEqual(quizzes[0]["ratingCount"], 1)
        self.assertEqual(quizzes[0]["questions"][0]["correctAnswer"], "")

    def test_update_quiz_only_by_creator(self):
        url = reverse("quiz_detail", kwargs={"quiz_id": QuizTestCase.test_quiz.pk})

        response = put_json(self.client, url, capitals_quiz, **auth_header(QuizTestCase.player))
        self.assertEqual(response.status_code, 403)

        response = put_json(self.client, url, capitals_quiz, **auth_header(QuizTestCase.creator))
        self.assertEqual(response.status_code, 200)

        quiz = Quiz.objects.get(pk=QuizTestCase.test_quiz.pk)
        self.assertEqual(quiz.title, "Capitals")
        self.assertEqual([question.question_text for question in quiz.questions.all()], ["Capital of France?"])

    def test_update_daily_quiz_keeps_daily_tag(self):
        admin = User.objects.create_user(username="boss", email="boss@gmail.com", password="password123",
                                         status=UserStatus.ACTIVE, role=UserRole.ADMIN)
        daily = Quiz.objects.create(title="Daily", creator=admin, date=timezone.localdate(),
                                    categories=[QuizCategory.DAILY_QUIZ, QuizCategory.MUSIC])

        response = put_json(self.client, reverse("quiz_detail", kwargs={"quiz_id": daily.pk}), capitals_quiz,
                            **auth_header(admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Quiz.objects.get(pk=daily.pk).categories, ["DAILY_QUIZ", "GEOGRAPHY"])

    def test_delete_quiz(self):
        QuizResult.objects.create(user=QuizTestCase.player, quiz=QuizTestCase.test_quiz, score=1, max_possible_score=1)
        url = reverse("quiz_detail", kwargs={"quiz_id": QuizTestCase.test_quiz.pk})

        response = self.client.delete(url, **auth_header(QuizTestCase.player))
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(url, **auth_header(QuizTestCase.creator))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Quiz.objects.filter(pk=QuizTestCase.test_quiz.pk).exists())
        self.assertFalse(QuizResult.objects.exists())
        self.assertFalse(Question.objects.exists())

    def test_user_quizzes(self):
        response = self.client.get(reverse("user_quizzes", kwargs={"user_id": QuizTestCase.creator.pk}))
        self.assertEqual([quiz["id"] for quiz in response.json()], [QuizTestCase.test_quiz.pk])

    def test_categories(self):
        self.assertIn("DAILY_QUIZ", self.client.get(reverse("categories")).json())
        self.assertIn("General knowledge", self.client.get(reverse("category_values")).json())


class QuizRatingTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.creator = User.objects.create_user(username="creator", email="creator@gmail.com",
                                               password="password123", status=UserStatus.ACTIVE)
        cls.player = User.objects.create_user(username="player", email="player@gmail.com",
                                              password="password123", status=UserStatus.ACTIVE)
        cls.test_quiz = Quiz.objects.create(title="test title", creator=cls.creator,
                                            categories=[QuizCategory.SPORTS])

    def setUp(self):
        self.client = Client()
        self.url = reverse("rate_quiz", kwargs={"quiz_id": QuizRatingTestCase.test_quiz.pk})

    def test_creator_cannot_rate_own_quiz(self):
        response = post_json(self.client, self.url, {"rating": 5}, **auth_header(QuizRatingTestCase.creator))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "You cannot rate your own quiz")
        self.assertFalse(QuizRating.objects.exists())

    def test_second_rating_updates_the_first(self):
        headers = auth_header(QuizRatingTestCase.player)

        post_json(self.client, self.url, {"rating": 4}, **headers)
        response = post_json(self.client, self.url, {"rating": 5}, **headers)
        self.assertEqual(response.json(), {"rating": 5})

        ratings = QuizRating.objects.filter(quiz=QuizRatingTestCase.test_quiz, user=QuizRatingTestCase.player)
        self.assertEqual(ratings.count(), 1)
        self.assertEqual(ratings.get().rating, 5)

    def test_rating_out_of_range(self):
        response = post_json(self.client, self.url, {"rating": 6}, **auth_header(QuizRatingTestCase.player))
        self.assertEqual(response.status_code, 400)


class QuizResultTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.creator = User.objects.create_user(username="creator", email="creator@gmail.com",
                                               password="password123", status=UserStatus.ACTIVE)
        cls.player = User.objects.create_user(username="player", email="player@gmail.com",
                                              password="password123", status=UserStatus.ACTIVE)
        cls.test_quiz = Quiz.objects.create(title="test title", creator=cls.creator,
                                            categories=[QuizCategory.SCIENCE])

    def setUp(self):
        self.client = Client()

    def test_save_result(self):
        response = post_json(self.client, reverse("save_result"), {
            "userId": QuizResultTestCase.player.pk,
            "quizId": QuizResultTestCase.test_quiz.pk,
            "score": 3,
            "maxPossibleScore": 5,
        }, **auth_header(QuizResultTestCase.player))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["quizTitle"], "test title")

        results = self.client.get(reverse("user_results", kwargs={"user_id": QuizResultTestCase.player.pk})).json()
        self.assertEqual(len(results), 1)
        results = self.client.get(reverse("quiz_results", kwargs={"quiz_id": QuizResultTestCase.test_quiz.pk})).json()
        self.assertEqual(results[0]["score"], 3)

    def test_save_result_for_other_user(self):
        response = post_json(self.client, reverse("save_result"), {
            "userId": QuizResultTestCase.creator.pk,
            "quizId": QuizResultTestCase.test_quiz.pk,
            "score": 3,
            "maxPossibleScore": 5,
        }, **auth_header(QuizResultTestCase.player))
        self.assertEqual(response.status_code, 403)

    def test_save_result_score_above_maximum(self):
        response = post_json(self.client, reverse("save_result"), {
            "userId": QuizResultTestCase.player.pk,
            "quizId": QuizResultTestCase.test_quiz.pk,
            "score": 6,
            "maxPossibleScore": 5,
        }, **auth_header(QuizResultTestCase.player))
        self.assertEqual(response.status_code, 400)

    def test_scores_count_first_result_and_skip_own_quizzes(self):
        QuizResult.objects.create(user=QuizResultTestCase.player, quiz=QuizResultTestCase.test_quiz,
                                  score=3, max_possible_score=5)
        QuizResult.objects.create(user=QuizResultTestCase.player, quiz=QuizResultTestCase.test_quiz,
                                  score=5, max_possible_score=5)
        QuizResult.objects.create(user=QuizResultTestCase.creator, quiz=QuizResultTestCase.test_quiz,
                                  score=5, max_possible_score=5)

        top = self.client.get(reverse("top_scores")).json()
        self.assertEqual(top, [{"userId": QuizResultTestCase.player.pk, "username": "player", "score": 3, "rank": 1}])

        own = self.client.get(reverse("user_score", kwargs={"user_id": QuizResultTestCase.player.pk})).json()
        self.assertEqual(own["rank"], 1)

        missing = self.client.get(reverse("user_score", kwargs={"user_id": QuizResultTestCase.creator.pk})).json()
        self.assertEqual(missing["rank"], -1)
        self.assertEqual(missing["score"], 0)


class DailyQuizEndpointTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(username="boss", email="boss@gmail.com", password="password123",
                                             status=UserStatus.ACTIVE, role=UserRole.ADMIN)
        cls.player = User.objects.create_user(username="player", email="player@gmail.com",
                                              password="password123", status=UserStatus.ACTIVE)

    def setUp(self):
        self.client = Client()

    def test_no_daily_quiz_yet(self):
        response = self.client.get(reverse("daily_quiz"))
        self.assertEqual(response.status_code, 404)

    def test_daily_quiz_and_completion_status(self):
        daily = Quiz.objects.create(title="Daily", creator=DailyQuizEndpointTestCase.admin,
                                    categories=[QuizCategory.DAILY_QUIZ, QuizCategory.MUSIC],
                                    date=timezone.localdate())
        Question.objects.create(quiz=daily, question_text="Who sang Thriller?",
                                answers=["Michael Jackson", "Prince"], correct_answer="Michael Jackson")

        response = self.client.get(reverse("daily_quiz"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], daily.pk)
        self.assertEqual(response.json()["questions"][0]["correctAnswer"], "")

        url = f"{reverse('daily_completion_status')}?userId={DailyQuizEndpointTestCase.player.pk}"
        self.assertEqual(self.client.get(url).json(), {"completed": False})

        QuizResult.objects.create(user=DailyQuizEndpointTestCase.player, quiz=daily, score=1, max_possible_score=1)
        self.assertEqual(self.client.get(url).json(), {"completed": True})

    def test_completion_status_requires_user_id(self):
        response = self.client.get(reverse("daily_completion_status"))
        self.assertEqual(response.status_code, 400)


class QuizContentFetcherTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(username="boss", email="boss@gmail.com", password="password123",
                                             status=UserStatus.ACTIVE, role=UserRole.ADMIN)

    def test_build_prompt_mentions_category_and_count(self):
        prompt = build_prompt("Science")
        self.assertIn('"Science"', prompt)
        self.assertIn("10 varied trivia questions", prompt)

    def test_clean_response_strips_fences_and_reasoning(self):
        content = f"<think>Let me think about planets.</think>\n```json\n{generated_questions_json}\n```"
        self.assertTrue(clean_response(content).startswith("["))

    def test_clean_response_without_array(self):
        with self.assertRaises(MalformedResponse) as context:
            clean_response("Sorry, I cannot help with that.")
        self.assertEqual(context.exception.raw_text, "Sorry, I cannot help with that.")

    def test_parse_questions(self):
        questions = parse_questions(generated_questions_json)
        self.assertEqual(len(questions), 2)
        self.assertEqual(questions[0].correct_answer, "Mars")

    def test_parse_german_keys(self):
        questions = parse_questions(german_questions_json)
        self.assertEqual(questions[0].question, "Wie heisst die Hauptstadt von Frankreich?")
        self.assertEqual(questions[0].correct_answer, "Paris")

    def test_parse_rejects_correct_answer_missing_from_answers(self):
        with self.assertRaises(MalformedResponse):
            parse_questions(wrong_answer_questions_json)

    def test_parse_rejects_broken_json(self):
        with self.assertRaises(MalformedResponse):
            parse_questions('[{"question": "What is H2O?",')

    @patch("quiz.llm_integration.time.sleep")
    @patch("quiz.llm_integration.requests.post")
    def test_fetch_retries_until_valid(self, mock_post, mock_sleep):
        mock_post.side_effect = [
            completion_response("Here are your questions!"),
            completion_response(f"```json\n{generated_questions_json}\n```"),
        ]

        questions = fetch_quiz_questions("Science")

        self.assertEqual(len(questions), 2)
        self.assertEqual(mock_post.call_count, 2)
        mock_sleep.assert_called_once_with(2.0)

        args, kwargs = mock_post.call_args
        self.assertTrue(kwargs["headers"]["Authorization"].startswith("Bearer "))
        self.assertEqual(kwargs["json"]["messages"][0]["role"], "user")

    @patch("quiz.llm_integration.time.sleep")
    @patch("quiz.llm_integration.requests.post")
    def test_fetch_treats_unexpected_envelope_as_malformed(self, mock_post, mock_sleep):
        broken = MagicMock()
        broken.text = json.dumps({"error": "overloaded"})
        mock_post.side_effect = [broken, completion_response(generated_questions_json)]

        self.assertEqual(len(fetch_quiz_questions("Science")), 2)

    @override_settings(AI_MAX_ATTEMPTS=3, AI_BACKOFF_SECONDS=1)
    @patch("accounts.emails.send_ses_email.delay")
    @patch("quiz.llm_integration.time.sleep")
    @patch("quiz.llm_integration.requests.post", side_effect=requests.ConnectionError("connection refused"))
    def test_fetch_gives_up_and_notifies_admins(self, mock_post, mock_sleep, send_email_pch):
        with self.assertRaises(ExternalServiceFailure):
            fetch_quiz_questions("Science")

        self.assertEqual(mock_post.call_count, 3)
        self.assertEqual([call.args[0] for call in mock_sleep.call_args_list], [1, 2])

        send_email_pch.assert_called_once()
        args, kwargs = send_email_pch.call_args
        self.assertEqual(kwargs["to_email"], ["boss@gmail.com"])
        self.assertEqual(kwargs["subject"], "Daily quiz generation failed")
        self.assertIn("connection refused", kwargs["body_text"])


@patch("accounts.emails.send_ses_email.delay")
class DailyQuizBuilderTestCase(TestCase):

    def setUp(self):
        self.questions = generated_questions_adapter.validate_json(generated_questions_json)
        self.today = timezone.localdate()

    def test_build_daily_quiz(self, send_email_pch):
        quiz = build_daily_quiz(self.questions, QuizCategory.SCIENCE, self.today)

        self.assertEqual(quiz.title, f"Daily quiz of {self.today.isoformat()}, category: Science")
        self.assertEqual(quiz.categories, ["DAILY_QUIZ", "SCIENCE"])
        self.assertEqual(quiz.date, self.today)
        self.assertTrue(quiz.creator.is_admin)
        self.assertEqual(quiz.creator.status, UserStatus.ACTIVE)

        questions = list(quiz.questions.all())
        self.assertEqual([question.correct_answer for question in questions], ["Mars", "Water"])
        self.assertTrue(all(question.difficulty == 1 and question.source == "Daily quiz" for question in questions))

    def test_second_daily_quiz_for_same_day_conflicts(self, send_email_pch):
        build_daily_quiz(self.questions, QuizCategory.SCIENCE, self.today)

        with self.assertRaises(DailyQuizConflict):
            build_daily_quiz(self.questions, QuizCategory.HISTORY, self.today)

        self.assertEqual(Quiz.objects.daily_for(self.today).count(), 1)

    def test_system_admin_is_reused(self, send_email_pch):
        first = build_daily_quiz(self.questions, QuizCategory.SCIENCE, self.today)
        second = build_daily_quiz(self.questions, QuizCategory.SCIENCE, self.today + timedelta(days=1))
        self.assertEqual(first.creator_id, second.creator_id)

    @patch("quiz.daily.fetch_quiz_questions")
    def test_sweep_publishes_when_owner_name_is_taken(self, mock_fetch, send_email_pch):
        mock_fetch.return_value = self.questions
        User.objects.create_user(username="admin", email="someone@example.com", password="password123",
                                 status=UserStatus.ACTIVE)
        User.objects.create_user(username=settings.SYSTEM_ADMIN_USERNAME, email="older@example.com",
                                 password="password123", status=UserStatus.ACTIVE)

        self.assertEqual(run_daily_quiz_sweep(self.today), DailyQuizState.PUBLISHED)

        owner = Quiz.objects.daily_for(self.today).get().creator
        self.assertEqual(owner.email, settings.SYSTEM_ADMIN_EMAIL)
        self.assertEqual(owner.username, f"{settings.SYSTEM_ADMIN_USERNAME}-2")
        self.assertTrue(owner.is_admin)

    @patch("quiz.daily.get_or_create_system_admin", side_effect=IntegrityError("owner insert failed"))
    def test_owner_failure_is_a_generation_failure(self, mock_owner, send_email_pch):
        with self.assertRaises(GenerationFailure):
            build_daily_quiz(self.questions, QuizCategory.SCIENCE, self.today)

        self.assertFalse(Quiz.objects.daily().exists())

    def test_pick_daily_category_skips_excluded(self, send_email_pch):
        for _ in range(50):
            self.assertNotIn(pick_daily_category(), EXCLUDED_DAILY_CATEGORIES)

    @patch("quiz.daily.fetch_quiz_questions")
    def test_sweep_twice_on_same_day_creates_one_quiz(self, mock_fetch, send_email_pch):
        mock_fetch.return_value = self.questions

        self.assertEqual(run_daily_quiz_sweep(self.today), DailyQuizState.PUBLISHED)
        self.assertEqual(run_daily_quiz_sweep(self.today), DailyQuizState.PUBLISHED)

        self.assertEqual(Quiz.objects.daily_for(self.today).count(), 1)
        mock_fetch.assert_called_once()

    @patch("quiz.daily.fetch_quiz_questions", side_effect=ExternalServiceFailure("No valid quiz"))
    def test_sweep_swallows_generation_failure(self, mock_fetch, send_email_pch):
        self.assertEqual(run_daily_quiz_sweep(self.today), DailyQuizState.NO_QUIZ_TODAY)
        self.assertFalse(Quiz.objects.daily().exists())

    @patch("quiz.daily.fetch_quiz_questions")
    def test_sweep_resets_streaks_after_publishing(self, mock_fetch, send_email_pch):
        mock_fetch.return_value = self.questions
        admin = User.objects.create_user(username="boss", email="boss@gmail.com", password="password123",
                                         status=UserStatus.ACTIVE, role=UserRole.ADMIN)
        Quiz.objects.create(title="Yesterday", creator=admin, date=self.today - timedelta(days=1),
                            categories=[QuizCategory.DAILY_QUIZ, QuizCategory.MUSIC])
        player = User.objects.create_user(username="player", email="player@gmail.com", password="password123",
                                          status=UserStatus.ACTIVE, daily_streak=4,
                                          last_daily_quiz_played=timezone.now() - timedelta(days=3))

        run_daily_quiz_sweep(self.today)

        player.refresh_from_db()
        self.assertEqual(player.daily_streak, 0)

    @patch("quiz.daily.fetch_quiz_questions")
    def test_generate_daily_quiz_task(self, mock_fetch, send_email_pch):
        mock_fetch.return_value = self.questions

        self.assertEqual(generate_daily_quiz(), "PUBLISHED")
        self.assertTrue(Quiz.objects.daily_for(timezone.localdate()).exists())
