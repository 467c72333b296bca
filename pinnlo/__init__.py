"""
PINNLO backend package.

A FastAPI service for building strategy documents out of typed cards, with
database, auth, queue and LLM provider abstractions so the same code runs
against hosted Postgres/Supabase in production and in-memory backends in
development and tests.
"""
