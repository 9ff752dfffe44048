from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import jwt

from django.test import SimpleTestCase, override_settings
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied
from rest_framework.test import APIRequestFactory

from portal.tools.auth.authentication import ClerkJWTAuthentication, ClerkPrincipal, IsPortalStaff
from portal.tools.auth.clerk import (
    authorized_party_matches,
    claims_email,
    claims_role,
    decode_clerk_token,
    is_staff_claims,
)


class ClerkJWTAuthenticationTests(SimpleTestCase):
    def setUp(self):
        self.factory = APIRequestFactory(enforce_csrf_checks=True)
        self.authentication = ClerkJWTAuthentication()

    def test_returns_none_without_token(self):
        request = self.factory.get("/api/invoices/")
        self.assertIsNone(self.authentication.authenticate(request))

    @patch("portal.tools.auth.authentication.decode_clerk_token")
    def test_reads_bearer_token(self, decode_token):
        decode_token.return_value = {"sub": "user_123", "email": "Person@Example.com"}
        request = self.factory.get("/api/invoices/", HTTP_AUTHORIZATION="Bearer test-token")
        user, claims = self.authentication.authenticate(request)

        self.assertEqual(user.clerk_user_id, "user_123")
        self.assertEqual(user.email, "person@example.com")
        self.assertEqual(claims["sub"], "user_123")
        self.assertEqual(request.clerk_token, "test-token")

    @patch("portal.tools.auth.authentication.decode_clerk_token")
    def test_reads_session_cookie_token(self, decode_token):
        decode_token.return_value = {"sub": "user_cookie"}
        request = self.factory.get("/api/invoices/")
        request.COOKIES["__session"] = "cookie-token"
        user, _ = self.authentication.authenticate(request)

        self.assertEqual(user.clerk_user_id, "user_cookie")
        self.assertEqual(request.clerk_token, "cookie-token")

    @patch("portal.tools.auth.authentication.decode_clerk_token")
    def test_cookie_auth_requires_csrf_for_unsafe_method(self, decode_token):
        decode_token.return_value = {"sub": "user_cookie"}
        request = self.factory.post("/api/quotes/", data={"contact_name": "x"}, format="json")
        request.COOKIES["__session"] = "cookie-token"

        with self.assertRaises(PermissionDenied):
            self.authentication.authenticate(request)

    @patch("portal.tools.auth.authentication.decode_clerk_token")
    def test_cookie_auth_accepts_valid_csrf_for_unsafe_method(self, decode_token):
        decode_token.return_value = {"sub": "user_cookie"}
        csrf_token = "a" * 32
        request = self.factory.post(
            "/api/quotes/",
            data={"contact_name": "x"},
            format="json",
            HTTP_X_CSRFTOKEN=csrf_token,
        )
        request.COOKIES["__session"] = "cookie-token"
        request.COOKIES["csrftoken"] = csrf_token

        user, _ = self.authentication.authenticate(request)
        self.assertEqual(user.clerk_user_id, "user_cookie")

    def test_invalid_authorization_header_missing_token(self):
        request = self.factory.get("/api/invoices/", HTTP_AUTHORIZATION="Bearer")
        with self.assertRaises(AuthenticationFailed):
            self.authentication.authenticate(request)

    def test_other_authorization_schemes_are_ignored(self):
        request = self.factory.get("/api/invoices/", HTTP_AUTHORIZATION="Basic dXNlcjpwYXNz")
        self.assertIsNone(self.authentication.authenticate(request))


class StaffRoleTests(SimpleTestCase):
    def test_reads_top_level_role(self):
        self.assertEqual(claims_role({"role": "Admin"}), "admin")

    def test_reads_metadata_role(self):
        self.assertEqual(claims_role({"metadata": {"role": "staff"}}), "staff")

    def test_missing_role_is_empty(self):
        self.assertEqual(claims_role({"metadata": "not-a-dict"}), "")

    def test_claims_email_prefers_email_claim(self):
        self.assertEqual(claims_email({"email": " Owner@Example.com "}), "owner@example.com")

    def test_permission_allows_staff_principal(self):
        principal = ClerkPrincipal(clerk_user_id="user_staff", claims={"metadata": {"role": "admin"}})
        request = SimpleNamespace(user=principal)
        self.assertTrue(IsPortalStaff().has_permission(request, None))

    def test_permission_rejects_customer_principal(self):
        principal = ClerkPrincipal(clerk_user_id="user_customer", claims={"role": "customer"})
        request = SimpleNamespace(user=principal)
        self.assertFalse(IsPortalStaff().has_permission(request, None))

    @override_settings(PORTAL_STAFF_ROLES=["crew-lead"])
    def test_staff_roles_are_configurable(self):
        principal = ClerkPrincipal(clerk_user_id="user_lead", claims={"role": "crew-lead"})
        self.assertTrue(principal.is_portal_staff)

    @override_settings(PORTAL_STAFF_ROLES=[" Admin "])
    def test_staff_role_match_ignores_case(self):
        self.assertTrue(is_staff_claims({"metadata": {"role": "ADMIN"}}))
        self.assertFalse(is_staff_claims({"role": "staff"}))


class AuthorizedPartiesTests(SimpleTestCase):
    def test_matches_exact_origin(self):
        self.assertTrue(authorized_party_matches("http://localhost:3000", ["http://localhost:3000"]))

    def test_matches_with_trailing_slash(self):
        self.assertTrue(authorized_party_matches("http://localhost:3000", ["http://localhost:3000/"]))

    def test_matches_loopback_aliases(self):
        self.assertTrue(authorized_party_matches("http://127.0.0.1:3000", ["http://localhost:3000"]))

    def test_rejects_different_ports(self):
        self.assertFalse(authorized_party_matches("http://127.0.0.1:3000", ["http://localhost:5173"]))

    def test_rejects_missing_azp(self):
        self.assertFalse(authorized_party_matches(None, ["https://portal.example.com"]))


@override_settings(
    CLERK_JWKS_URL="https://clerk.portal.example.test/.well-known/jwks.json",
    CLERK_JWT_ISSUER="",
    CLERK_JWT_AUDIENCE="",
    CLERK_AUTHORIZED_PARTIES=["https://portal.example.test"],
)
class DecodeClerkTokenTests(SimpleTestCase):
    def jwks_client(self):
        client = MagicMock()
        client.get_signing_key_from_jwt.return_value = SimpleNamespace(key="public-key")
        return client

    @patch("portal.tools.auth.clerk._build_jwks_client")
    def test_unresolvable_signing_key_fails_authentication(self, build_client):
        build_client.return_value.get_signing_key_from_jwt.side_effect = jwt.PyJWKClientError("no key")

        with self.assertRaisesMessage(AuthenticationFailed, "Unable to resolve Clerk signing key."):
            decode_clerk_token("header.payload.signature")

    @patch("portal.tools.auth.clerk.jwt.decode")
    @patch("portal.tools.auth.clerk._build_jwks_client")
    def test_foreign_authorized_party_is_rejected(self, build_client, decode):
        build_client.return_value = self.jwks_client()
        decode.return_value = {"sub": "user_customer", "azp": "https://elsewhere.example"}

        with self.assertRaisesMessage(AuthenticationFailed, "Add the portal origin to CLERK_AUTHORIZED_PARTIES."):
            decode_clerk_token("header.payload.signature")

    @patch("portal.tools.auth.clerk.jwt.decode")
    @patch("portal.tools.auth.clerk._build_jwks_client")
    def test_portal_origin_is_accepted(self, build_client, decode):
        build_client.return_value = self.jwks_client()
        decode.return_value = {"sub": "user_customer", "azp": "https://portal.example.test/"}

        self.assertEqual(decode_clerk_token("header.payload.signature")["sub"], "user_customer")
        self.assertEqual(decode.call_args.args[1], "public-key")
