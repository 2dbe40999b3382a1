import streamlit as st

from project_sync.base import ProjectStore
from project_sync.config import get_secret
from project_sync.schema import ErrorKind, Identity
from project_sync.store import create_project_store

NEW_PROJECT_LABEL = "➕ New project"
STORE_SESSION_KEY = "project_store"


def session_identity() -> Identity | None:
    uid = str(st.session_state.get("user_uid") or get_secret("APP_USER_ID", "")).strip()
    if not uid:
        return None
    return Identity(
        uid=uid,
        email=str(st.session_state.get("user_email") or get_secret("APP_USER_EMAIL", "")),
        display_name=str(st.session_state.get("user_display_name") or get_secret("APP_USER_NAME", "")),
    )


def get_project_store() -> ProjectStore:
    """Return the store for this session, building it on first use."""
    store = st.session_state.get(STORE_SESSION_KEY)
    if store is None:
        store = create_project_store(session_identity())
        st.session_state[STORE_SESSION_KEY] = store
    return store


def project_label(project: object) -> str:
    if not isinstance(project, dict):
        return "Untitled project"
    name = str(project.get("name") or "").strip() or "Untitled project"
    if project.get("origin") == "shared":
        return f"{name} (team)"
    return name


def status_message(loading: bool, error: ErrorKind | None, has_projects: bool) -> tuple[str, str] | None:
    """Return ``(level, text)`` for the banner above the selector, if any."""
    if loading:
        return ("info", "Loading projects…")
    if error == ErrorKind.PERMISSION:
        if has_projects:
            return ("caption", "Some projects could not be loaded; showing what is available.")
        return ("warning", "Access to the project store was denied. Check the project sharing settings.")
    if error == ErrorKind.CONNECTION:
        if has_projects:
            return ("caption", "Connection interrupted; showing the last saved projects.")
        return ("warning", "Could not reach the project store. Projects will appear once the connection returns.")
    return None


def checklist_progress(project: object) -> tuple[int, int]:
    if not isinstance(project, dict):
        return (0, 0)
    checked = project.get("checked")
    if not isinstance(checked, dict):
        return (0, 0)
    return (sum(1 for value in checked.values() if value), len(checked))


def render_status(store: ProjectStore) -> None:
    message = status_message(store.loading, store.error, bool(store.projects))
    if message is None:
        return
    level, text = message
    getattr(st, level)(text)


def render_project_selector(store: ProjectStore) -> None:
    render_status(store)
    projects = store.projects
    ids = [p.get("id") for p in projects if isinstance(p, dict) and p.get("id")]
    labels = {p.get("id"): project_label(p) for p in projects if isinstance(p, dict)}

    current = store.active_project_id
    options = ids + [NEW_PROJECT_LABEL]
    default_value = current if current in ids else NEW_PROJECT_LABEL

    if st.session_state.get("project_selector") not in options:
        st.session_state.project_selector = default_value

    selected_option = st.selectbox(
        "Create / Select Project",
        options,
        key="project_selector",
        format_func=lambda option: labels.get(option, option),
        disabled=store.loading,
    )

    if selected_option == NEW_PROJECT_LABEL:
        new_name = st.text_input("New project name", key="new_project_name", placeholder="e.g., My Site")
        new_url = st.text_input("Site URL", key="new_project_url", placeholder="example.com")
        if st.button("Create and use project", width="stretch"):
            name = (new_name or "").strip()
            if not name:
                st.warning("Enter a project name first.")
                return
            created = store.create_project(name, (new_url or "").strip())
            if created:
                st.session_state.project_selector = created["id"]
                st.toast(f"Using project: {name}")
            st.rerun()
        return

    if selected_option != current:
        store.set_active_project_id(selected_option)
        st.toast(f"Switched to project: {labels.get(selected_option, selected_option)}")
        st.rerun()

    rename_to = st.text_input("Rename project", value=labels.get(selected_option, ""), key=f"rename_{selected_option}")
    if st.button("Save name", key=f"rename_project_{selected_option}"):
        if rename_to.strip():
            store.rename_project(selected_option, rename_to.strip())
            st.rerun()

    st.divider()
    st.caption("Danger zone")
    confirm_delete = st.checkbox(
        f"I understand deleting '{labels.get(selected_option, selected_option)}' removes all of its data.",
        key=f"confirm_delete_{selected_option}",
    )
    if st.button("Delete this project", type="secondary", width="stretch", key=f"delete_project_{selected_option}"):
        if not confirm_delete:
            st.warning("Check the confirmation box before deleting.")
            return
        store.delete_project(selected_option)
        st.toast("Project deleted")
        st.rerun()


def render_checklist(store: ProjectStore, items: list[tuple[str, str]]) -> None:
    project = store.active_project
    if not project:
        st.info("Create a project to start tracking the checklist.")
        return
    done, total = checklist_progress(project)
    st.caption(f"{done} of {max(total, len(items))} items checked")
    checked = project.get("checked") if isinstance(project.get("checked"), dict) else {}
    for key, label in items:
        value = bool(checked.get(key))
        if st.checkbox(label, value=value, key=f"check_{project.get('id')}_{key}") != value:
            store.toggle_check_item(key)
            st.rerun()
