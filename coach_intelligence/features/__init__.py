"""
Features Module - Self-contained feature units.

- database: Supabase repositories
- knowledge: chunking, embeddings, backfill jobs, hybrid search, ranking
- context: per-turn context assembly for the coach model
- automation: knowledge pipeline scheduling and background tasks
"""
