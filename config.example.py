# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file)
by src/focus_timeline/config.py. Do NOT commit real keys; keep them in .env (gitignored).
"""

ENV_VARS = {
    # App / logging
    "FOCUS_APP_NAME": "App display name (default: focus).",
    "FOCUS_LOG_LEVEL": "Console logging level (default: INFO). The file log is always DEBUG.",
    "FOCUS_DATA_DIR": "Local data directory for focus.log (default: .local/focus).",
    # Remote store (Supabase / PostgREST)
    "FOCUS_SUPABASE_URL": "Project URL, e.g. https://<ref>.supabase.co (falls back to SUPABASE_URL).",
    "FOCUS_SUPABASE_KEY": "Project API key sent as apikey + bearer (falls back to SUPABASE_KEY).",
    "FOCUS_USER_ID": "User whose time blocks, todos and skips are loaded (empty => offline demo user).",
    "FOCUS_HTTP_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    "FOCUS_HTTP_READ_TIMEOUT_SECONDS": "HTTP read/write/pool timeout (default: 20, never below connect).",
    # Sync tuning
    "FOCUS_REFRESH_INTERVAL_SECONDS": "Background refresh interval (default: 300).",
    "FOCUS_MEETING_WINDOW_DAYS": "Days after the viewed day to load project meetings for (default: 7).",
    # Table names
    "FOCUS_TIME_BLOCKS_TABLE": "Time blocks table (default: time_blocks).",
    "FOCUS_MEETINGS_TABLE": "Project meetings table (default: projects_meeting).",
    "FOCUS_TODOS_TABLE": "Personal todos table (default: personal_todos).",
    "FOCUS_SKIPS_TABLE": "Skip ledger table (default: focus_skipped_tasks).",
}
