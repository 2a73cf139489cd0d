import json
from datetime import timedelta
from unittest.mock import patch, MagicMock

from botocore.exceptions import ClientError

from django.conf import settings
from django.contrib.auth import get_user_model
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

from accounts import services
from accounts.backends import CustomBackend
from accounts.emails import send_email
from accounts.models import UserRole, UserStatus
from accounts.streaks import remind_streaks_at_risk, sweep
from accounts.tasks import complete_deletion_requests, delete_unverified_accounts, send_ses_email
from accounts.tokens import account_activation_token, issue_auth_token
from accounts.utils import get_ses_client
from quiz.models import Question, Quiz, QuizCategory, QuizFavorite, QuizRating, QuizResult

User = get_user_model()


def auth_header(user):
    return {"HTTP_AUTHORIZATION": f"Bearer {issue_auth_token(user)}"}


def post_json(client, url, data=None, **extra):
    return client.post(url, data=json.dumps(data or {}), content_type="application/json", **extra)


def put_json(client, url, data=None, **extra):
    return client.put(url, data=json.dumps(data or {}), content_type="application/json", **extra)


def subjects_sent(send_email_pch):
    return [kwargs["subject"] for args, kwargs in send_email_pch.call_args_list]


class AuthTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.test_user = User.objects.create_user(username="testuser", email="testuser@gmail.com",
                                                 password="password123", status=UserStatus.ACTIVE)
        cls.pending_user = User.objects.create_user(username="pendinguser", email="pending@gmail.com",
                                                    password="password123")
        cls.blocked_user = User.objects.create_user(username="blockeduser", email="blocked@gmail.com",
                                                    password="password123", status=UserStatus.BLOCKED)

    def setUp(self):
        self.client = Client()

    @patch("accounts.emails.send_ses_email.delay")
    def test_register_creates_pending_user_and_sends_verification(self, send_email_pch):
        response = post_json(self.client, reverse("register"), {
            "name": "newuser",
            "email": "newuser@example.com",
            "password": "strongpassword123",
            "dailyQuizReminder": True,
        })
        self.assertEqual(response.status_code, 200)

        user = User.objects.get(username="newuser")
        self.assertEqual(user.status, UserStatus.PENDING_VERIFICATION)
        self.assertFalse(user.is_active)
        self.assertTrue(user.daily_quiz_reminder)

        send_email_pch.assert_called_once()
        args, kwargs = send_email_pch.call_args
        self.assertEqual(kwargs["to_email"], [user.email])
        self.assertEqual(kwargs["from_email"], settings.DEFAULT_FROM_EMAIL)
        self.assertEqual(kwargs["subject"], "Verify your e-mail address")

        uid = urlsafe_base64_encode(force_bytes(user.pk))
        self.assertIn(f"/verify-email/{uid}/", kwargs["body_html"])

    @patch("accounts.emails.send_ses_email.delay")
    def test_register_duplicate_username(self, send_email_pch):
        response = post_json(self.client, reverse("register"), {
            "name": "testuser",
            "email": "other@example.com",
            "password": "strongpassword123",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "This username is already taken")
        send_email_pch.assert_not_called()

    @patch("accounts.emails.send_ses_email.delay")
    def test_register_daily_quiz_owner_name_is_reserved(self, send_email_pch):
        response = post_json(self.client, reverse("register"), {
            "name": settings.SYSTEM_ADMIN_USERNAME.upper(),
            "email": "owner@example.com",
            "password": "strongpassword123",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "This username is already taken")
        self.assertFalse(User.objects.filter(email="owner@example.com").exists())

    @patch("accounts.emails.send_ses_email.delay")
    def test_register_duplicate_email_sends_password_reset(self, send_email_pch):
        response = post_json(self.client, reverse("register"), {
            "name": "someoneelse",
            "email": "TestUser@gmail.com",
            "password": "strongpassword123",
        })
        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(username="someoneelse").exists())

        send_email_pch.assert_called_once()
        args, kwargs = send_email_pch.call_args
        self.assertEqual(kwargs["to_email"], ["testuser@gmail.com"])
        self.assertEqual(kwargs["subject"], "Reset your password")

    @patch("accounts.emails.send_ses_email.delay")
    def test_register_short_password(self, send_email_pch):
        response = post_json(self.client, reverse("register"), {
            "name": "newuser",
            "email": "newuser@example.com",
            "password": "short",
        })
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["error"].startswith("password"))
        send_email_pch.assert_not_called()

    def test_invalid_json_body(self):
        response = self.client.post(reverse("register"), data="not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid JSON body")

    def test_verify_email_activates_account(self):
        user_obj = AuthTestCase.pending_user
        uid = urlsafe_base64_encode(force_bytes(user_obj.pk))
        token = account_activation_token.make_token(user_obj)

        response = self.client.post(reverse("verify_email", kwargs={"uidb64": uid, "token": token}))
        self.assertEqual(response.status_code, 200)

        user_obj.refresh_from_db()
        self.assertEqual(user_obj.status, UserStatus.ACTIVE)
        self.assertTrue(user_obj.is_active)

        # The link is single use
        response = self.client.post(reverse("verify_email", kwargs={"uidb64": uid, "token": token}))
        self.assertEqual(response.status_code, 400)

    def test_verify_email_invalid_token(self):
        user_obj = AuthTestCase.pending_user
        uid = urlsafe_base64_encode(force_bytes(user_obj.pk))
        response = self.client.post(reverse("verify_email", kwargs={"uidb64": uid, "token": "invalid-token"}))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid or expired link")

    def test_verify_email_malformed_uid(self):
        token = account_activation_token.make_token(AuthTestCase.pending_user)
        response = self.client.post(reverse("verify_email", kwargs={"uidb64": "not-a-valid-uid", "token": token}))
        self.assertEqual(response.status_code, 400)

    def test_login_with_email(self):
        response = post_json(self.client, reverse("login"), {"email": "testuser@gmail.com", "password": "password123"})
        self.assertEqual(response.status_code, 200)

        body = response.json()
        self.assertEqual(body["user"]["email"], "testuser@gmail.com")

        me = self.client.get(reverse("me"), HTTP_AUTHORIZATION=f"Bearer {body['token']}")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["name"], "testuser")

    def test_login_with_username(self):
        response = post_json(self.client, reverse("login"), {"email": "testuser", "password": "password123"})
        self.assertEqual(response.status_code, 200)

    def test_login_wrong_password(self):
        response = post_json(self.client, reverse("login"), {"email": "testuser@gmail.com", "password": "nope"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid e-mail or password")

    def test_login_unverified_account(self):
        response = post_json(self.client, reverse("login"), {"email": "pending@gmail.com", "password": "password123"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "E-mail address not verified")

    def test_login_blocked_account(self):
        response = post_json(self.client, reverse("login"), {"email": "blocked@gmail.com", "password": "password123"})
        self.assertEqual(response.status_code, 403)

    @patch("accounts.emails.send_ses_email.delay")
    def test_login_reactivates_pending_delete_account(self, send_email_pch):
        user = AuthTestCase.test_user
        user.status = UserStatus.PENDING_DELETE
        user.deletion_requested_at = timezone.now()
        user.save()

        response = post_json(self.client, reverse("login"), {"email": "testuser@gmail.com", "password": "password123"})
        self.assertEqual(response.status_code, 200)

        user.refresh_from_db()
        self.assertEqual(user.status, UserStatus.ACTIVE)
        self.assertIsNone(user.deletion_requested_at)
        self.assertEqual(subjects_sent(send_email_pch), ["Account reactivated"])

    def test_me_requires_token(self):
        response = self.client.get(reverse("me"))
        self.assertEqual(response.status_code, 401)

        response = self.client.get(reverse("me"), HTTP_AUTHORIZATION="Bearer forged-token")
        self.assertEqual(response.status_code, 401)

    def test_blocked_user_token_is_rejected(self):
        response = self.client.get(reverse("me"), **auth_header(AuthTestCase.blocked_user))
        self.assertEqual(response.status_code, 401)

    @patch("accounts.emails.send_ses_email.delay")
    def test_password_reset_flow(self, send_email_pch):
        response = post_json(self.client, reverse("reset_password_request"), {"email": "testuser@gmail.com"})
        self.assertEqual(response.status_code, 200)
        send_email_pch.assert_called_once()

        user = AuthTestCase.test_user
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = account_activation_token.make_token(user)

        response = post_json(self.client, reverse("reset_password", kwargs={"uidb64": uid, "token": token}),
                             {"newPassword": "brandnewpassword"})
        self.assertEqual(response.status_code, 200)

        user.refresh_from_db()
        self.assertTrue(user.check_password("brandnewpassword"))

    def test_password_reset_unknown_email(self):
        response = post_json(self.client, reverse("reset_password_request"), {"email": "nobody@gmail.com"})
        self.assertEqual(response.status_code, 404)


class ProfileTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.test_user = User.objects.create_user(username="testuser", email="testuser@gmail.com",
                                                 password="password123", status=UserStatus.ACTIVE)
        cls.other_user = User.objects.create_user(username="otheruser", email="other@gmail.com",
                                                  password="password123", status=UserStatus.ACTIVE)
        cls.quiz = Quiz.objects.create(title="Capitals", creator=cls.other_user,
                                       categories=[QuizCategory.GEOGRAPHY])

    def setUp(self):
        self.client = Client()
        self.headers = auth_header(ProfileTestCase.test_user)

    def test_get_profile(self):
        response = self.client.get(reverse("profile"), **self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["email"], "testuser@gmail.com")

    def test_update_profile(self):
        response = put_json(self.client, reverse("profile"), {
            "name": "renamed",
            "email": "renamed@gmail.com",
            "dailyQuizReminder": True,
        }, **self.headers)
        self.assertEqual(response.status_code, 200)

        user = User.objects.get(pk=ProfileTestCase.test_user.pk)
        self.assertEqual(user.username, "renamed")
        self.assertTrue(user.daily_quiz_reminder)

    def test_update_profile_email_taken(self):
        response = put_json(self.client, reverse("profile"), {
            "name": "testuser",
            "email": "other@gmail.com",
        }, **self.headers)
        self.assertEqual(response.status_code, 400)

    @patch("accounts.emails.send_ses_email.delay")
    def test_delete_profile_marks_pending_delete(self, send_email_pch):
        response = self.client.delete(reverse("profile"), **self.headers)
        self.assertEqual(response.status_code, 200)

        user = User.objects.get(pk=ProfileTestCase.test_user.pk)
        self.assertEqual(user.status, UserStatus.PENDING_DELETE)
        self.assertIsNotNone(user.deletion_requested_at)
        self.assertEqual(subjects_sent(send_email_pch), ["Account scheduled for deletion"])

    @patch("accounts.emails.send_ses_email.delay")
    def test_token_stops_working_after_deletion_request(self, send_email_pch):
        self.client.delete(reverse("profile"), **self.headers)

        response = self.client.get(reverse("profile"), **self.headers)
        self.assertEqual(response.status_code, 401)

        response = post_json(self.client, reverse("login"), {"email": "testuser@gmail.com", "password": "password123"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["status"], UserStatus.ACTIVE)

        response = self.client.get(reverse("profile"), **self.headers)
        self.assertEqual(response.status_code, 200)

    def test_update_profile_to_reserved_name(self):
        response = put_json(self.client, reverse("profile"), {
            "name": settings.SYSTEM_ADMIN_USERNAME,
            "email": "testuser@gmail.com",
        }, **self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(User.objects.get(pk=ProfileTestCase.test_user.pk).username, "testuser")

    def test_change_password_requires_current_password(self):
        response = put_json(self.client, reverse("change_password"), {
            "currentPassword": "wrong",
            "newPassword": "anotherpassword",
        }, **self.headers)
        self.assertEqual(response.status_code, 400)

        response = put_json(self.client, reverse("change_password"), {
            "currentPassword": "password123",
            "newPassword": "anotherpassword",
        }, **self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(User.objects.get(pk=ProfileTestCase.test_user.pk).check_password("anotherpassword"))

    def test_daily_quiz_reminder(self):
        url = reverse("daily_quiz_reminder", kwargs={"user_id": ProfileTestCase.test_user.pk})

        response = self.client.put(f"{url}?reminder=true", **self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(User.objects.get(pk=ProfileTestCase.test_user.pk).daily_quiz_reminder)

        response = self.client.put(f"{url}?reminder=maybe", **self.headers)
        self.assertEqual(response.status_code, 400)

    def test_daily_quiz_reminder_of_other_user(self):
        url = reverse("daily_quiz_reminder", kwargs={"user_id": ProfileTestCase.other_user.pk})
        response = self.client.put(f"{url}?reminder=true", **self.headers)
        self.assertEqual(response.status_code, 403)

    def test_toggle_favorite(self):
        url = reverse("toggle_favorite", kwargs={"quiz_id": ProfileTestCase.quiz.pk})

        response = self.client.post(url, **self.headers)
        self.assertEqual(response.json(), {"favorited": True})

        favorites = self.client.get(reverse("favorites"), **self.headers).json()
        self.assertEqual([quiz["id"] for quiz in favorites], [ProfileTestCase.quiz.pk])

        response = self.client.post(url, **self.headers)
        self.assertEqual(response.json(), {"favorited": False})
        self.assertFalse(QuizFavorite.objects.exists())

    def test_toggle_favorite_unknown_quiz(self):
        response = self.client.post(reverse("toggle_favorite", kwargs={"quiz_id": 9999}), **self.headers)
        self.assertEqual(response.status_code, 404)

    def test_quiz_history(self):
        QuizResult.objects.create(user=ProfileTestCase.test_user, quiz=ProfileTestCase.quiz,
                                  score=3, max_possible_score=5)

        response = self.client.get(reverse("quiz_history"), **self.headers)
        history = response.json()
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0]["quizTitle"], "Capitals")
        self.assertEqual(history[0]["category"], QuizCategory.GEOGRAPHY)
        self.assertFalse(history[0]["isDailyQuiz"])


class DailyStreakTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(username="admin", email="admin@gmail.com", password="password123",
                                             status=UserStatus.ACTIVE, role=UserRole.ADMIN)
        cls.player = User.objects.create_user(username="player", email="player@gmail.com",
                                              password="password123", status=UserStatus.ACTIVE)

    def setUp(self):
        self.client = Client()
        self.today = timezone.localdate()

    def daily_quiz(self, day):
        return Quiz.objects.create(title=f"Daily quiz of {day}", creator=DailyStreakTestCase.admin,
                                   categories=[QuizCategory.DAILY_QUIZ, QuizCategory.SCIENCE], date=day)

    def test_increment_twice_on_same_day_is_idempotent(self):
        headers = auth_header(DailyStreakTestCase.player)

        response = self.client.post(reverse("daily_quiz_completed"), **headers)
        self.assertEqual(response.json(), {"dailyStreak": 1})

        response = self.client.post(reverse("daily_quiz_completed"), **headers)
        self.assertEqual(response.json(), {"dailyStreak": 1})

        player = User.objects.get(pk=DailyStreakTestCase.player.pk)
        self.assertEqual(player.daily_streak, 1)
        self.assertEqual(player.streak_counted_on, self.today)

    def test_increment_skipped_when_daily_result_exists_today(self):
        quiz = self.daily_quiz(self.today)
        QuizResult.objects.create(user=DailyStreakTestCase.player, quiz=quiz, score=5, max_possible_score=10)

        self.assertEqual(services.increment_daily_streak(DailyStreakTestCase.player), 0)

        player = User.objects.get(pk=DailyStreakTestCase.player.pk)
        self.assertIsNotNone(player.last_daily_quiz_played)

    def test_increment_continues_streak_from_yesterday(self):
        player = DailyStreakTestCase.player
        player.daily_streak = 4
        player.last_daily_quiz_played = timezone.now() - timedelta(days=1)
        player.save()

        self.assertEqual(services.increment_daily_streak(player), 5)

    def test_streak_endpoint(self):
        player = DailyStreakTestCase.player
        player.daily_streak = 3
        player.save()

        response = self.client.get(reverse("streak"), **auth_header(player))
        self.assertEqual(response.json(), {"dailyStreak": 3})

    @patch("accounts.emails.send_ses_email.delay")
    def test_sweep_resets_missed_streak_and_sends_one_lost_mail(self, send_email_pch):
        self.daily_quiz(self.today - timedelta(days=1))

        player = DailyStreakTestCase.player
        player.daily_streak = 7
        player.daily_quiz_reminder = True
        player.last_daily_quiz_played = timezone.now() - timedelta(days=2)
        player.save()

        summary = sweep(self.today)

        player.refresh_from_db()
        self.assertEqual(player.daily_streak, 0)
        self.assertEqual(summary.reset, 1)
        self.assertEqual(summary.lost_mails, 1)

        lost_mails = [kwargs for args, kwargs in send_email_pch.call_args_list
                      if kwargs["to_email"] == ["player@gmail.com"]]
        self.assertEqual(len(lost_mails), 1)
        self.assertEqual(lost_mails[0]["subject"], "You lost your daily streak")
        self.assertIn("7 days", lost_mails[0]["body_text"])

    @patch("accounts.emails.send_ses_email.delay")
    def test_sweep_keeps_streak_when_no_quiz_yesterday(self, send_email_pch):
        player = DailyStreakTestCase.player
        player.daily_streak = 7
        player.last_daily_quiz_played = timezone.now() - timedelta(days=3)
        player.save()

        summary = sweep(self.today)

        player.refresh_from_db()
        self.assertEqual(player.daily_streak, 7)
        self.assertEqual(summary.reset, 0)

    @patch("accounts.emails.send_ses_email.delay")
    def test_sweep_keeps_streak_when_played_yesterday(self, send_email_pch):
        self.daily_quiz(self.today - timedelta(days=1))

        player = DailyStreakTestCase.player
        player.daily_streak = 2
        player.daily_quiz_reminder = True
        player.last_daily_quiz_played = timezone.now() - timedelta(days=1)
        player.save()

        summary = sweep(self.today)

        player.refresh_from_db()
        self.assertEqual(player.daily_streak, 2)
        self.assertEqual(summary.reminders, 1)
        self.assertEqual(subjects_sent(send_email_pch), ["Your daily quiz is waiting"])

    @patch("accounts.emails.send_ses_email.delay")
    def test_remind_streaks_at_risk(self, send_email_pch):
        player = DailyStreakTestCase.player
        player.daily_streak = 3
        player.daily_quiz_reminder = True
        player.last_daily_quiz_played = timezone.now() - timedelta(days=1)
        player.save()

        User.objects.create_user(username="played", email="played@gmail.com", password="password123",
                                 status=UserStatus.ACTIVE, daily_quiz_reminder=True, daily_streak=5,
                                 last_daily_quiz_played=timezone.now())

        self.assertEqual(remind_streaks_at_risk(self.today), 1)
        args, kwargs = send_email_pch.call_args
        self.assertEqual(kwargs["to_email"], ["player@gmail.com"])
        self.assertIn("3 days", kwargs["body_text"])


class EmailDispatchTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.pending_user = User.objects.create_user(username="pending", email="pending@gmail.com",
                                                    password="password123")
        cls.active_user = User.objects.create_user(username="active", email="active@gmail.com",
                                                   password="password123", status=UserStatus.ACTIVE)

    @patch("accounts.emails.send_ses_email.delay")
    def test_pending_user_only_gets_lifecycle_mails(self, send_email_pch):
        self.assertFalse(send_email("pending@gmail.com", "Reminder", "daily-quiz-reminder", {"username": "pending"}))
        send_email_pch.assert_not_called()

        self.assertTrue(send_email("pending@gmail.com", "Verify", "verification-email", {"username": "pending"}))
        send_email_pch.assert_called_once()

    @patch("accounts.emails.send_ses_email.delay")
    def test_unknown_recipient_is_suppressed(self, send_email_pch):
        self.assertFalse(send_email("nobody@gmail.com", "Reminder", "daily-quiz-reminder"))
        send_email_pch.assert_not_called()

    @patch("accounts.emails.send_ses_email.delay")
    def test_active_user_gets_rendered_mail(self, send_email_pch):
        self.assertTrue(send_email("active@gmail.com", "Reminder", "daily-quiz-reminder", {"username": "active"}))

        args, kwargs = send_email_pch.call_args
        self.assertIn("Hi active", kwargs["body_text"])
        self.assertIn(settings.SUPPORT_EMAIL, kwargs["body_html"])


class AdminUserTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.admin = User.objects.create_user(username="admin", email="admin@gmail.com", password="password123",
                                             status=UserStatus.ACTIVE, role=UserRole.ADMIN)
        cls.player = User.objects.create_user(username="player", email="player@gmail.com",
                                              password="password123", status=UserStatus.ACTIVE)

    def setUp(self):
        self.client = Client()
        self.headers = auth_header(AdminUserTestCase.admin)

    def test_non_admin_is_rejected(self):
        response = self.client.get(reverse("admin_users"), **auth_header(AdminUserTestCase.player))
        self.assertEqual(response.status_code, 403)

    def test_list_users_roles_and_states(self):
        self.assertEqual(len(self.client.get(reverse("admin_users"), **self.headers).json()), 2)
        self.assertEqual(self.client.get(reverse("admin_roles"), **self.headers).json(), ["USER", "ADMIN"])
        self.assertIn("BLOCKED", self.client.get(reverse("admin_states"), **self.headers).json())

    @patch("accounts.emails.send_ses_email.delay")
    def test_create_user(self, send_email_pch):
        response = post_json(self.client, reverse("admin_create_user"), {
            "name": "created",
            "email": "created@gmail.com",
            "password": "initialpassword",
        }, **self.headers)
        self.assertEqual(response.status_code, 201)

        user = User.objects.get(username="created")
        self.assertEqual(user.status, UserStatus.ACTIVE)
        self.assertTrue(user.check_password("initialpassword"))
        self.assertEqual(subjects_sent(send_email_pch), ["An administrator created your account"])

    @patch("accounts.emails.send_ses_email.delay")
    def test_create_user_with_daily_quiz_owner_name(self, send_email_pch):
        response = post_json(self.client, reverse("admin_create_user"), {
            "name": settings.SYSTEM_ADMIN_USERNAME,
            "email": "created@gmail.com",
            "password": "initialpassword",
        }, **self.headers)
        self.assertEqual(response.status_code, 400)
        send_email_pch.assert_not_called()

    @patch("accounts.emails.send_ses_email.delay")
    def test_promotion_sends_only_specific_mail(self, send_email_pch):
        url = reverse("admin_update_user", kwargs={"user_id": AdminUserTestCase.player.pk})
        response = put_json(self.client, url, {"role": "ADMIN"}, **self.headers)
        self.assertEqual(response.status_code, 200)

        self.assertEqual(User.objects.get(pk=AdminUserTestCase.player.pk).role, UserRole.ADMIN)
        self.assertEqual(subjects_sent(send_email_pch), ["You are now an administrator"])

    @patch("accounts.emails.send_ses_email.delay")
    def test_plain_update_sends_generic_mail(self, send_email_pch):
        url = reverse("admin_update_user", kwargs={"user_id": AdminUserTestCase.player.pk})
        response = put_json(self.client, url, {"name": "renamed"}, **self.headers)
        self.assertEqual(response.status_code, 200)

        self.assertEqual(subjects_sent(send_email_pch), ["An administrator updated your account"])

        # A following promotion is not affected by the previous update
        send_email_pch.reset_mock()
        put_json(self.client, url, {"role": "ADMIN"}, **self.headers)
        self.assertEqual(subjects_sent(send_email_pch), ["You are now an administrator"])

    @patch("accounts.emails.send_ses_email.delay")
    def test_block_and_password_change(self, send_email_pch):
        url = reverse("admin_update_user", kwargs={"user_id": AdminUserTestCase.player.pk})
        response = put_json(self.client, url, {"status": "BLOCKED", "password": "replacedpassword"}, **self.headers)
        self.assertEqual(response.status_code, 200)

        player = User.objects.get(pk=AdminUserTestCase.player.pk)
        self.assertFalse(player.is_active)
        self.assertTrue(player.check_password("replacedpassword"))
        # Blocked accounts still hear about the block, the other mails are suppressed
        self.assertEqual(subjects_sent(send_email_pch), ["Your account has been blocked"])

    @patch("accounts.emails.send_ses_email.delay")
    def test_streak_change_stamps_last_played(self, send_email_pch):
        url = reverse("admin_update_user", kwargs={"user_id": AdminUserTestCase.player.pk})
        put_json(self.client, url, {"dailyStreak": 9}, **self.headers)

        player = User.objects.get(pk=AdminUserTestCase.player.pk)
        self.assertEqual(player.daily_streak, 9)
        self.assertIsNotNone(player.last_daily_quiz_played)

    @patch("accounts.emails.send_ses_email.delay")
    def test_daily_play_after_streak_edit_still_counts(self, send_email_pch):
        url = reverse("admin_update_user", kwargs={"user_id": AdminUserTestCase.player.pk})
        put_json(self.client, url, {"dailyStreak": 5}, **self.headers)

        response = self.client.post(reverse("daily_quiz_completed"), **auth_header(AdminUserTestCase.player))
        self.assertEqual(response.json(), {"dailyStreak": 6})

        response = self.client.post(reverse("daily_quiz_completed"), **auth_header(AdminUserTestCase.player))
        self.assertEqual(response.json(), {"dailyStreak": 6})

    @patch("accounts.emails.send_ses_email.delay")
    def test_delete_user(self, send_email_pch):
        response = self.client.delete(reverse("admin_delete_user", kwargs={"user_id": AdminUserTestCase.player.pk}),
                                      **self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(pk=AdminUserTestCase.player.pk).exists())
        self.assertEqual(subjects_sent(send_email_pch), ["An administrator deleted your account"])


class AccountCleanupTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.creator = User.objects.create_user(username="creator", email="creator@gmail.com",
                                               password="password123", status=UserStatus.ACTIVE)
        cls.player = User.objects.create_user(username="player", email="player@gmail.com",
                                              password="password123", status=UserStatus.ACTIVE)

    def test_delete_user_account_purges_dependents(self):
        quiz = Quiz.objects.create(title="Mine", creator=AccountCleanupTestCase.creator,
                                   categories=[QuizCategory.MUSIC])
        Question.objects.create(quiz=quiz, question_text="Q?", answers=["a", "b"], correct_answer="a")
        QuizResult.objects.create(user=AccountCleanupTestCase.player, quiz=quiz, score=1, max_possible_score=1)
        QuizRating.objects.create(user=AccountCleanupTestCase.player, quiz=quiz, rating=4)
        QuizFavorite.objects.create(user=AccountCleanupTestCase.player, quiz=quiz)

        services.delete_user_account(AccountCleanupTestCase.creator.pk)

        self.assertFalse(User.objects.filter(pk=AccountCleanupTestCase.creator.pk).exists())
        self.assertFalse(Quiz.objects.exists())
        self.assertFalse(Question.objects.exists())
        self.assertFalse(QuizResult.objects.exists())
        self.assertFalse(QuizRating.objects.exists())
        self.assertFalse(QuizFavorite.objects.exists())
        self.assertTrue(User.objects.filter(pk=AccountCleanupTestCase.player.pk).exists())

    def test_delete_unverified_accounts(self):
        stale = User.objects.create_user(username="stale", email="stale@gmail.com", password="password123")
        fresh = User.objects.create_user(username="fresh", email="fresh@gmail.com", password="password123")
        User.objects.filter(pk=stale.pk).update(
            created_at=timezone.now() - timedelta(seconds=settings.PASSWORD_RESET_TIMEOUT + 60))

        delete_unverified_accounts()

        self.assertFalse(User.objects.filter(pk=stale.pk).exists())
        self.assertTrue(User.objects.filter(pk=fresh.pk).exists())

    @patch("accounts.emails.send_ses_email.delay")
    def test_complete_deletion_requests(self, send_email_pch):
        now = timezone.now()
        warned = User.objects.create_user(username="warned", email="warned@gmail.com", password="password123",
                                          status=UserStatus.PENDING_DELETE,
                                          deletion_requested_at=now - timedelta(days=6, minutes=30))
        expired = User.objects.create_user(username="expired", email="expired@gmail.com", password="password123",
                                           status=UserStatus.PENDING_DELETE,
                                           deletion_requested_at=now - timedelta(days=8))

        result = complete_deletion_requests()

        self.assertEqual(result, {"warned": 1, "purged": 1})
        self.assertTrue(User.objects.filter(pk=warned.pk).exists())
        self.assertFalse(User.objects.filter(pk=expired.pk).exists())
        self.assertEqual(sorted(subjects_sent(send_email_pch)),
                         ["Reminder: your account will be deleted", "Your account data has been deleted"])


class SesClientTestCase(TestCase):

    @patch('accounts.utils.settings')
    @patch('accounts.utils.boto3.client')
    def test_ses_client_production_environment_uses_default_credentials(self, mock_boto_client, mock_settings):
        mock_settings.DJANGO_ENV = "PRODUCTION"
        mock_settings.AWS_REGION = "us-east-1"

        mock_client_instance = MagicMock()
        mock_boto_client.return_value = mock_client_instance

        client = get_ses_client()
        mock_boto_client.assert_called_once_with('ses', region_name="us-east-1")
        self.assertEqual(client, mock_client_instance)

    @patch('accounts.utils.settings')
    @patch('accounts.utils.boto3.client')
    def test_ses_client_development_environment_uses_explicit_credentials(self, mock_boto_client, mock_settings):
        mock_settings.DJANGO_ENV = "DEVELOPMENT"
        mock_settings.AWS_REGION = "us-west-2"
        mock_settings.AWS_ACCESS_KEY = "FAKEKEY"
        mock_settings.AWS_SECRET_ACCESS_KEY = "FAKESECRET"

        mock_client_instance = MagicMock()
        mock_boto_client.return_value = mock_client_instance

        client = get_ses_client()
        mock_boto_client.assert_called_once_with(
            'ses',
            aws_access_key_id="FAKEKEY",
            aws_secret_access_key="FAKESECRET",
            region_name="us-west-2"
        )
        self.assertEqual(client, mock_client_instance)

    @patch('accounts.utils.settings')
    @patch('accounts.utils.boto3.client', side_effect=Exception("SES failure"))
    def test_ses_client_returns_none_on_exception(self, mock_boto_client, mock_settings):
        mock_settings.DJANGO_ENV = "DEVELOPMENT"
        mock_settings.AWS_REGION = "eu-west-1"
        mock_settings.AWS_ACCESS_KEY = "INVALID"
        mock_settings.AWS_SECRET_ACCESS_KEY = "INVALID"

        client = get_ses_client()
        self.assertIsNone(client)


class SendSesEmailTaskTestCase(TestCase):

    @patch("accounts.tasks.get_ses_client")
    def test_send_with_reply_to_support(self, mock_get_client):
        mock_client = MagicMock()
        mock_client.send_email.return_value = {"MessageId": "abc-123"}
        mock_get_client.return_value = mock_client

        message_id = send_ses_email(["player@gmail.com"], "Hello", "Hi player", "<p>Hi player</p>")

        self.assertEqual(message_id, "abc-123")
        kwargs = mock_client.send_email.call_args.kwargs
        self.assertEqual(kwargs["Source"], settings.DEFAULT_FROM_EMAIL)
        self.assertEqual(kwargs["Destination"], {"ToAddresses": ["player@gmail.com"]})
        self.assertEqual(kwargs["ReplyToAddresses"], [settings.SUPPORT_EMAIL])
        self.assertEqual(kwargs["Message"]["Body"]["Html"]["Data"], "<p>Hi player</p>")

    @patch("accounts.tasks.get_ses_client")
    def test_rejected_mail_is_raised(self, mock_get_client):
        mock_client = MagicMock()
        mock_client.send_email.side_effect = ClientError(
            {"Error": {"Code": "MessageRejected", "Message": "Email address is not verified"}}, "SendEmail")
        mock_get_client.return_value = mock_client

        with self.assertRaises(ClientError):
            send_ses_email(["player@gmail.com"], "Hello", "Hi player")

    @patch("accounts.tasks.get_ses_client", return_value=None)
    def test_missing_client(self, mock_get_client):
        with self.assertRaises(RuntimeError):
            send_ses_email(["player@gmail.com"], "Hello", "Hi player")


class CustomBackendTest(TestCase):
    def setUp(self):
        self.backend = CustomBackend()
        self.backend_user = User.objects.create_user(
            username="testuser",
            email="test@example.com",
            password="securepass123",
            status=UserStatus.ACTIVE,
        )

        self.inactive_user = User.objects.create_user(username="testuser2", email="test_yser_2@example.com",
                                                      password="kkkksskss")

    def test_authenticate_with_username_success(self):
        authenticated_user = self.backend.authenticate(
            request=None, username="testuser", password="securepass123"
        )
        self.assertEqual(authenticated_user, self.backend_user)

    def test_authenticate_with_email_success(self):
        authenticated_user = self.backend.authenticate(
            request=None, username="TEST@example.com", password="securepass123"
        )
        self.assertEqual(authenticated_user, self.backend_user)

    def test_authenticate_with_wrong_password(self):
        authenticated_user = self.backend.authenticate(
            request=None, username="testuser", password="wrongpassword"
        )
        self.assertIsNone(authenticated_user)

    def test_authenticate_pending_user_does_not_allow_login(self):
        authenticated_user = self.backend.authenticate(
            request=None, username="test_yser_2@example.com", password="kkkksskss"
        )
        self.assertIsNone(authenticated_user)

    def test_get_user_valid(self):
        user = self.backend.get_user(self.backend_user.id)
        self.assertEqual(user, self.backend_user)

    def test_get_user_invalid(self):
        user = self.backend.get_user(9999)  # non-existent user ID
        self.assertIsNone(user)

    def test_get_user_inactive(self):
        user = self.backend.get_user(self.inactive_user.id)
        self.assertIsNone(user)
