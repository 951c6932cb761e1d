"""Sales coaching backend: transcribe sales calls and analyse them against reference books."""
