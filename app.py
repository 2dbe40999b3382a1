import streamlit as st

from project_sync.config import remote_mode_enabled
from project_sync.ui.project_selector import (
    get_project_store,
    render_checklist,
    render_project_selector,
)

# Placeholder items; the real checklist content lives with the dashboard.
CHECKLIST_PREVIEW = [
    ("schema-org", "Add Organization / WebSite schema"),
    ("faq-page", "Publish an FAQ page with FAQPage schema"),
    ("robots-ai", "Allow AI crawlers in robots.txt"),
    ("author-bios", "Add author bios with credentials"),
]


# ----------------------------
# Auth gate (uses Streamlit secrets)
# ----------------------------

def require_passcode() -> None:
    secret_key = "APP_PASSCODE" if "APP_PASSCODE" in st.secrets else "password"
    expected = st.secrets.get(secret_key, "")

    if not expected:
        return

    st.session_state.setdefault("auth_ok", False)
    if st.session_state.auth_ok:
        return

    st.title("🔒 Projects")
    code = st.text_input("Password", type="password")
    if st.button("Log in", type="primary"):
        st.session_state.auth_ok = code == expected
        if not st.session_state.auth_ok:
            st.error("Incorrect password.")
        st.rerun()
    st.stop()


def main() -> None:
    st.set_page_config(page_title="Projects", layout="wide")
    require_passcode()
    store = get_project_store()

    st.title("Projects")
    st.caption("Cloud sync is on." if remote_mode_enabled() else "Local mode: projects are stored on this machine.")

    with st.sidebar:
        render_project_selector(store)
        if st.button("Refresh", width="stretch"):
            st.rerun()

    project = store.active_project
    if project:
        st.subheader(project.get("name") or "Untitled project")
        if project.get("url"):
            st.caption(project["url"])
    render_checklist(store, CHECKLIST_PREVIEW)


if __name__ == "__main__":
    main()
