import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient

import testing_utils
from slimcircle.app import create_app
from slimcircle.dependencies import (
    get_chat_service,
    get_document_store,
    get_identity_provider,
)
from slimcircle.identity_provider import IdentityProviderError
from shared.firebase_constants import (
    ARTICLES_COLLECTION,
    CATEGORIES_COLLECTION,
    POLLS_COLLECTION,
    USERS_COLLECTION,
)

USER_AUTH = {"Authorization": "Bearer user-token"}
ADMIN_AUTH = {"Authorization": "Bearer admin-token"}


class SlimCircleApiTestCase(unittest.TestCase):
    def setUp(self):
        testing_utils.use_in_memory_backends()
        self.client = TestClient(create_app())
        self.store = get_document_store()
        self.provider = get_identity_provider()
        self.provider.add_user(testing_utils.make_user("user_1"), token="user-token")
        self.provider.add_user(
            testing_utils.make_user("admin_1", first_name="Grace", role="admin"),
            token="admin-token",
        )


class AddOptionApiTests(SlimCircleApiTestCase):
    def test_adds_trimmed_option_then_rejects_duplicate(self):
        testing_utils.seed_poll(self.store, "p1", options=("Tacos",))

        response = self.client.post(
            "/api/polls/add-option",
            json={"pollId": "p1", "optionText": " Pizza "},
            headers=USER_AUTH,
        )
        self.assertEqual(response.status_code, 201)
        option = response.json()["option"]
        self.assertEqual(option["text"], "Pizza")
        self.assertTrue(option["id"].startswith("opt_"))

        poll = self.store.get(POLLS_COLLECTION, "p1")
        self.assertEqual([opt["text"] for opt in poll["options"]], ["Tacos", "Pizza"])
        self.assertEqual(poll["votesByOption"][option["id"]], 0)

        duplicate = self.client.post(
            "/api/polls/add-option",
            json={"pollId": "p1", "optionText": "pizza"},
            headers=USER_AUTH,
        )
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.json(), {"error": "This option already exists"})
        self.assertEqual(len(self.store.get(POLLS_COLLECTION, "p1")["options"]), 2)

    def test_requires_authentication_before_body_checks(self):
        response = self.client.post("/api/polls/add-option", json={})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "Unauthorized"})

    def test_unknown_token_is_unauthorized(self):
        response = self.client.post(
            "/api/polls/add-option",
            json={"pollId": "p1", "optionText": "Pizza"},
            headers={"Authorization": "Bearer nope"},
        )
        self.assertEqual(response.status_code, 401)

    def test_session_cookie_is_accepted(self):
        testing_utils.seed_poll(self.store, "p1")
        self.client.cookies.set("__session", "user-token")
        response = self.client.post(
            "/api/polls/add-option", json={"pollId": "p1", "optionText": "Sushi"}
        )
        self.assertEqual(response.status_code, 201)

    def test_validation_messages(self):
        testing_utils.seed_poll(self.store, "open")
        testing_utils.seed_poll(
            self.store, "locked", poll_settings={"participantsCanAddOptions": False}
        )
        testing_utils.seed_poll(self.store, "closed", closedAt=testing_utils.past_timestamp())
        testing_utils.seed_poll(
            self.store,
            "expired",
            poll_settings={"activeTill": testing_utils.past_timestamp()},
        )
        cases = [
            ({"optionText": "Pizza"}, 400, "Poll ID is required"),
            ({"pollId": "open", "optionText": "   "}, 400, "Option text is required"),
            ({"pollId": "missing", "optionText": "Pizza"}, 404, "Poll not found"),
            (
                {"pollId": "locked", "optionText": "Pizza"},
                403,
                "This poll does not allow adding options",
            ),
            ({"pollId": "closed", "optionText": "Pizza"}, 400, "Poll is closed"),
            ({"pollId": "expired", "optionText": "Pizza"}, 400, "Poll has expired"),
            ({"pollId": "open", "optionText": " TACOS "}, 400, "This option already exists"),
        ]
        for body, status, message in cases:
            with self.subTest(body=body):
                response = self.client.post(
                    "/api/polls/add-option", json=body, headers=USER_AUTH
                )
                self.assertEqual(response.status_code, status)
                self.assertEqual(response.json(), {"error": message})

    def test_closed_is_reported_before_expired(self):
        testing_utils.seed_poll(
            self.store,
            "p1",
            poll_settings={"activeTill": testing_utils.past_timestamp()},
            closedAt=testing_utils.past_timestamp(),
        )
        response = self.client.post(
            "/api/polls/add-option",
            json={"pollId": "p1", "optionText": "Pizza"},
            headers=USER_AUTH,
        )
        self.assertEqual(response.json(), {"error": "Poll is closed"})

    def test_non_json_body_is_bad_request(self):
        response = self.client.post(
            "/api/polls/add-option",
            content=b"not json",
            headers={**USER_AUTH, "Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid request body"})

    def test_store_failure_is_generic_500(self):
        testing_utils.seed_poll(self.store, "p1")
        with patch.object(
            self.store, "run_transaction", side_effect=RuntimeError("boom")
        ):
            response = self.client.post(
                "/api/polls/add-option",
                json={"pollId": "p1", "optionText": "Pizza"},
                headers=USER_AUTH,
            )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to add option"})


class PollApiTests(SlimCircleApiTestCase):
    def _create(self, **overrides):
        body = {
            "question": "Lunch?",
            "options": [{"text": "Tacos"}, {"text": "Pizza"}],
            "channelId": "channel-1",
        }
        body.update(overrides)
        return self.client.post("/api/polls", json=body, headers=USER_AUTH)

    def test_create_poll_with_defaults(self):
        response = self._create()
        self.assertEqual(response.status_code, 201)
        poll = response.json()["poll"]
        self.assertEqual(poll["question"], "Lunch?")
        self.assertEqual([opt["text"] for opt in poll["options"]], ["Tacos", "Pizza"])
        self.assertEqual(set(poll["votesByOption"].values()), {0})
        self.assertEqual(poll["totalVotes"], 0)
        self.assertEqual(poll["createdByUserId"], "user_1")
        self.assertEqual(poll["createdByUserName"], "Ada Lovelace")
        self.assertTrue(poll["settings"]["anonymous"])
        self.assertFalse(poll["settings"]["multipleAnswers"])
        self.assertFalse(poll["settings"]["participantsCanAddOptions"])
        self.assertTrue(poll["settings"]["activeTill"].endswith("Z"))
        self.assertIsNotNone(self.store.get(POLLS_COLLECTION, poll["id"]))

    def test_create_poll_validation(self):
        cases = [
            ({"question": "  "}, "Question is required"),
            ({"options": [{"text": "Tacos"}]}, "At least 2 options are required"),
            ({"channelId": None}, "Channel ID is required"),
            (
                {"options": [{"text": "Tacos"}, {"text": "  "}]},
                "At least 2 valid options are required",
            ),
        ]
        for overrides, message in cases:
            with self.subTest(message=message):
                response = self._create(**overrides)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json(), {"error": message})

    def test_get_poll_includes_user_votes(self):
        poll_id = self._create(settings={"multipleAnswers": True}).json()["poll"]["id"]
        poll = self.client.get("/api/polls", params={"id": poll_id}, headers=USER_AUTH)
        option_ids = [opt["id"] for opt in poll.json()["poll"]["options"]]

        vote = self.client.post(
            "/api/polls/vote",
            json={"pollId": poll_id, "optionIds": option_ids},
            headers=USER_AUTH,
        )
        self.assertEqual(vote.json(), {"success": True})

        response = self.client.get("/api/polls", params={"id": poll_id}, headers=USER_AUTH)
        self.assertEqual(response.status_code, 200)
        payload = response.json()["poll"]
        self.assertEqual(sorted(payload["userVotes"]), sorted(option_ids))
        self.assertEqual(payload["totalVotes"], 2)

    def test_get_poll_errors(self):
        self.assertEqual(
            self.client.get("/api/polls", headers=USER_AUTH).json(),
            {"error": "Poll ID is required"},
        )
        missing = self.client.get("/api/polls", params={"id": "nope"}, headers=USER_AUTH)
        self.assertEqual(missing.status_code, 404)

    def test_vote_single_answer_replaces_previous(self):
        testing_utils.seed_poll(self.store, "p1", options=("Tacos", "Pizza"))
        for option_id in ("opt_0", "opt_1"):
            response = self.client.post(
                "/api/polls/vote",
                json={"pollId": "p1", "optionIds": [option_id]},
                headers=USER_AUTH,
            )
            self.assertEqual(response.status_code, 200)

        poll = self.store.get(POLLS_COLLECTION, "p1")
        self.assertEqual(poll["votesByOption"], {"opt_0": 0, "opt_1": 1})
        self.assertEqual(poll["totalVotes"], 1)
        self.assertNotIn("userName", poll["votes"][0])

    def test_vote_records_voter_on_named_polls(self):
        testing_utils.seed_poll(
            self.store, "p1", options=("Tacos", "Pizza"), poll_settings={"anonymous": False}
        )
        self.client.post(
            "/api/polls/vote", json={"pollId": "p1", "optionIds": ["opt_0"]}, headers=USER_AUTH
        )
        vote = self.store.get(POLLS_COLLECTION, "p1")["votes"][0]
        self.assertEqual(vote["userName"], "Ada Lovelace")
        self.assertEqual(vote["userImage"], "https://img.example/ada.png")

    def test_anonymous_vote_skips_directory_lookup(self):
        testing_utils.seed_poll(self.store, "p1", options=("Tacos", "Pizza"))
        with patch.object(
            self.provider, "get_user", side_effect=IdentityProviderError("clerk down")
        ):
            response = self.client.post(
                "/api/polls/vote",
                json={"pollId": "p1", "optionIds": ["opt_1"]},
                headers=USER_AUTH,
            )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.store.get(POLLS_COLLECTION, "p1")["totalVotes"], 1)

    def test_named_vote_needs_directory(self):
        testing_utils.seed_poll(
            self.store, "p1", options=("Tacos", "Pizza"), poll_settings={"anonymous": False}
        )
        with patch.object(
            self.provider, "get_user", side_effect=IdentityProviderError("clerk down")
        ):
            response = self.client.post(
                "/api/polls/vote",
                json={"pollId": "p1", "optionIds": ["opt_1"]},
                headers=USER_AUTH,
            )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to vote"})

    def test_vote_validation(self):
        testing_utils.seed_poll(self.store, "p1", options=("Tacos", "Pizza"))
        cases = [
            ({"optionIds": ["opt_0"]}, "Poll ID is required"),
            ({"pollId": "p1", "optionIds": []}, "At least one option must be selected"),
            ({"pollId": "p1", "optionIds": ["opt_9"]}, "Invalid option selected"),
            ({"pollId": "p1", "optionIds": ["opt_0", "opt_1"]}, "This poll only allows one answer"),
        ]
        for body, message in cases:
            with self.subTest(message=message):
                response = self.client.post("/api/polls/vote", json=body, headers=USER_AUTH)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json(), {"error": message})


class IdentityApiTests(SlimCircleApiTestCase):
    def test_save_keeps_history(self):
        for statement in ("I am strong", "I am patient", "  I am consistent  "):
            response = self.client.post(
                "/api/identity/save", json={"statement": statement}, headers=USER_AUTH
            )
            self.assertEqual(response.status_code, 200)

        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["identity"], "I am consistent")
        user = self.store.get(USERS_COLLECTION, "user_1")
        self.assertEqual(user["identitySetAt"], payload["setAt"])
        self.assertEqual(
            [entry["statement"] for entry in user["identityHistory"]],
            ["I am strong", "I am patient"],
        )

    def test_save_requires_statement(self):
        response = self.client.post(
            "/api/identity/save", json={"statement": " "}, headers=USER_AUTH
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Identity statement is required"})

    def test_validate_requires_user_or_guest(self):
        response = self.client.post(
            "/api/identity/validate", json={"statement": "I am patient"}
        )
        self.assertEqual(response.status_code, 401)

    def test_validate_as_guest_rejects_short_statement(self):
        response = self.client.post(
            "/api/identity/validate",
            json={"statement": "abc", "guestSessionId": "guest-1"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {
                "isValid": False,
                "reasoning": "Too short - please describe your commitment",
                "suggestion": "I am committed to a healthier lifestyle",
            },
        )

    def test_validate_requires_statement(self):
        response = self.client.post(
            "/api/identity/validate", json={"statement": "  "}, headers=USER_AUTH
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Identity statement is required"})

    @patch("models.claude.call_predict")
    def test_validate_trims_before_length_check(self, mock_predict):
        mock_predict.return_value = '{"is_valid": true, "issues": []}'
        response = self.client.post(
            "/api/identity/validate",
            json={"statement": "   wxyz   ", "guestSessionId": "guest-1"},
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertFalse(payload["isValid"])
        self.assertEqual(payload["reasoning"], "Too short - please describe your commitment")
        mock_predict.assert_not_called()

    @patch("models.claude.call_predict")
    def test_validate_accepts_statement(self, mock_predict):
        mock_predict.return_value = '{"is_valid": true, "issues": [], "suggested_rewrite": null}'
        response = self.client.post(
            "/api/identity/validate",
            json={"statement": "someone who keeps promises to myself"},
            headers=USER_AUTH,
        )
        self.assertEqual(
            response.json(),
            {"isValid": True, "reasoning": "Looks good!", "suggestion": None},
        )
        self.assertIn("I am someone who keeps promises", mock_predict.call_args[0][0])


class DiscoverApiTests(SlimCircleApiTestCase):
    def test_lists_articles_newest_first(self):
        self.store.seed(
            ARTICLES_COLLECTION,
            [
                ("old", {"title": "Old", "publishedAt": datetime(2024, 1, 1, tzinfo=timezone.utc)}),
                ("new", {"title": "New", "publishedAt": datetime(2025, 1, 31, 12, tzinfo=timezone.utc)}),
            ],
        )
        response = self.client.get("/api/discover/articles")
        self.assertEqual(response.status_code, 200)
        articles = response.json()["articles"]
        self.assertEqual([a["id"] for a in articles], ["new", "old"])
        self.assertEqual(articles[0]["publishedAt"], "2025-01-31T12:00:00.000Z")

    def test_empty_listing(self):
        self.assertEqual(self.client.get("/api/discover/articles").json(), {"articles": []})
        self.assertEqual(
            self.client.get("/api/discover/categories").json(), {"categories": []}
        )

    def test_get_article(self):
        self.store.seed(ARTICLES_COLLECTION, [("a1", {"title": "Sleep"})])
        response = self.client.get("/api/discover/articles/a1")
        self.assertEqual(response.json(), {"article": {"id": "a1", "title": "Sleep"}})

        missing = self.client.get("/api/discover/articles/nope")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"error": "Article not found"})

    def test_lists_categories(self):
        self.store.seed(CATEGORIES_COLLECTION, [("c1", {"name": "Mindset"})])
        response = self.client.get("/api/discover/categories")
        self.assertEqual(response.json(), {"categories": [{"id": "c1", "name": "Mindset"}]})


class CoachesApiTests(SlimCircleApiTestCase):
    def test_requires_admin(self):
        self.assertEqual(self.client.get("/api/admin/coaches").status_code, 401)
        response = self.client.get("/api/admin/coaches", headers=USER_AUTH)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {"error": "Forbidden"})

    def test_lists_coaches_sorted_by_name(self):
        self.provider.add_user(
            testing_utils.make_user("coach_2", first_name="Zoe", last_name="Quinn", role="coach")
        )
        self.provider.add_user(
            testing_utils.make_user("coach_1", first_name="Ben", last_name="Ode", role="coach")
        )
        self.provider.add_user(
            testing_utils.make_user("coach_3", first_name="", last_name="", role="coach")
        )
        response = self.client.get("/api/admin/coaches", headers=ADMIN_AUTH)
        self.assertEqual(response.status_code, 200)
        coaches = response.json()["coaches"]
        self.assertEqual(
            [coach["name"] for coach in coaches], ["Ben Ode", "Unnamed Coach", "Zoe Quinn"]
        )
        self.assertEqual(coaches[0]["email"], "coach_1@example.com")
        self.assertEqual({coach["role"] for coach in coaches}, {"coach"})


class ChatApiTests(SlimCircleApiTestCase):
    def test_join_tolerates_missing_channels(self):
        response = self.client.post("/api/chat/join-global-channels", headers=USER_AUTH)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})

        chat = get_chat_service()
        self.assertEqual(chat.users["user_1"]["name"], "Ada Lovelace")
        self.assertEqual(chat.channels["share-wins"]["members"], ["user_1"])
        self.assertNotIn("announcements", chat.channels)

    def test_join_after_admin_setup(self):
        setup = self.client.post("/api/chat/setup-global-channels", headers=ADMIN_AUTH)
        self.assertEqual(setup.status_code, 200)
        self.assertEqual(
            setup.json()["channels"],
            {"announcements": "announcements", "socialCorner": "social-corner"},
        )

        self.client.post("/api/chat/join-global-channels", headers=USER_AUTH)
        chat = get_chat_service()
        for channel_id in ("announcements", "social-corner", "share-wins"):
            self.assertIn("user_1", chat.channels[channel_id]["members"])

    def test_setup_requires_admin(self):
        response = self.client.post("/api/chat/setup-global-channels", headers=USER_AUTH)
        self.assertEqual(response.status_code, 403)

    def test_get_channel_ids(self):
        response = self.client.get("/api/chat/setup-global-channels")
        self.assertEqual(response.json()["channels"]["shareWins"], "share-wins")

    def test_upsert_failure_is_500(self):
        chat = get_chat_service()
        with patch.object(chat, "upsert_user", side_effect=RuntimeError("stream down")):
            response = self.client.post("/api/chat/join-global-channels", headers=USER_AUTH)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Failed to join channels"})


if __name__ == "__main__":
    unittest.main()
