"""Data layer: domain models, Supabase repositories and Redis backends."""
