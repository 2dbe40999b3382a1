"""Project sync diagnostics page.
Lets you verify which project store mode is active and that both project
tables are readable before relying on cloud sync.
"""
import traceback

import streamlit as st

from project_sync.config import (
    PLACEHOLDER_KEYS,
    PLACEHOLDER_URLS,
    get_secret,
    remote_mode_enabled,
    resolve_sync_settings,
)
from project_sync.supabase_storage import ROW_COLUMNS

st.set_page_config(page_title="Project Sync Diagnostics", page_icon="🔌")
st.title("🔌 Project Sync Diagnostics")
st.caption("Use this page to confirm where projects are stored and that the app can read them.")

# ---------------------------------------------------------------------------
# 1. Config check: are the credentials set at all?
# ---------------------------------------------------------------------------
st.subheader("1. Credentials")

url = get_secret("SUPABASE_URL").strip()
key = get_secret("SUPABASE_KEY").strip()

url_ok = bool(url) and url not in PLACEHOLDER_URLS
key_ok = bool(key) and key not in PLACEHOLDER_KEYS

if url_ok:
    st.success(f"SUPABASE_URL: `{url[:40]}{'...' if len(url) > 40 else ''}`")
else:
    st.error("SUPABASE_URL is missing or still set to a placeholder value.")

if key_ok:
    masked = key[:6] + "..." + key[-4:]
    st.success(f"SUPABASE_KEY: `{masked}` ({len(key)} chars)")
else:
    st.error("SUPABASE_KEY is missing or still set to a placeholder value.")

# ---------------------------------------------------------------------------
# 2. Mode in effect for this process
# ---------------------------------------------------------------------------
st.subheader("2. Store Mode")
settings = resolve_sync_settings()
if remote_mode_enabled():
    st.success("Remote mode: projects sync through Supabase.")
else:
    st.info(
        f"Local mode: projects are kept in `{settings.local_db_path}`. "
        "Restart the app after adding credentials to switch to cloud sync."
    )

if not (url_ok and key_ok):
    st.info(
        "Add your Supabase credentials to `.streamlit/secrets.toml`:\n"
        "```toml\n"
        "SUPABASE_URL = \"https://<ref>.supabase.co\"\n"
        "SUPABASE_KEY = \"<your-anon-key>\"\n"
        "```"
    )
    st.stop()

# ---------------------------------------------------------------------------
# 3. Client initialisation
# ---------------------------------------------------------------------------
st.subheader("3. Client Initialisation")
try:
    from supabase import create_client
    sb = create_client(url, key)
    st.success("Supabase client created successfully.")
except Exception as exc:
    st.error(f"Failed to create Supabase client: {exc}")
    st.code(traceback.format_exc())
    st.stop()

# ---------------------------------------------------------------------------
# 4. Table read test (owner table and shared table)
# ---------------------------------------------------------------------------
st.subheader("4. Project Tables")
for label, table in (("Owner", settings.legacy_table), ("Shared", settings.shared_table)):
    try:
        resp = sb.table(table).select(ROW_COLUMNS).limit(5).execute()
        rows = resp.data or []
        st.success(f"{label} table `{table}` is readable. Rows returned: {len(rows)}")
        if rows:
            st.dataframe([{"id": r.get("id"), "owner_id": r.get("owner_id")} for r in rows])
    except Exception as exc:
        st.error(f"Reading `{table}` failed: {exc}")
        st.code(traceback.format_exc())
        st.warning(
            "Common causes:\n"
            f"- The `{table}` table doesn't exist\n"
            "- Row Level Security (RLS) is blocking the anon key; add a select policy\n"
            "- Wrong Supabase project URL or key"
        )
