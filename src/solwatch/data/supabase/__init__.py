"""Supabase data access layer."""

from solwatch.data.supabase.client import SupabaseClient

__all__ = ["SupabaseClient"]
