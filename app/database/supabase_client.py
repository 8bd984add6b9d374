from typing import Optional
from fastapi import Request
from supabase import create_client, Client
from app.config import settings


def extract_access_token(request: Request) -> Optional[str]:
    """Supabase access token from `Authorization: Bearer` or, failing that, the session cookie"""
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get(settings.auth_cookie_name)


class SupabaseClient:
    _anon_client: Client = None
    _service_client: Client = None

    @classmethod
    def get_anon_client(cls) -> Client:
        if cls._anon_client is None:
            cls._anon_client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._anon_client

    @classmethod
    def get_user_client(cls, access_token: str) -> Client:
        """Fresh client whose table queries run as the token's user, so RLS policies apply.

        Never cached: the token is per request.
        """
        client = create_client(settings.supabase_url, settings.supabase_key)
        client.postgrest.auth(access_token)
        return client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS.

        Needed for the first membership row of a new organization: the
        organization_members insert policy requires an existing admin row.
        """
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or cls.get_anon_client()


def get_supabase(request: Request) -> Client:
    token = extract_access_token(request)
    if token:
        return SupabaseClient.get_user_client(token)
    return SupabaseClient.get_anon_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()
