from __future__ import annotations

from supabase import Client, create_client

from ..config import supabase_credentials


def get_supabase_client() -> Client:
    url, key = supabase_credentials()
    return create_client(url, key)
