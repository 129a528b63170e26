import sys
from pathlib import Path
import json
import traceback

import streamlit as st

# Ensure project root is on sys.path so absolute imports work when run via `streamlit run template_scraper/app.py`
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from template_scraper.api_client import ApiClient, refresh_client
from template_scraper.config import (
    AppConfig,
    MAX_ITEM_LIMIT,
    MIN_ITEM_LIMIT,
    configure_logging,
)
from template_scraper.errors import ExtractionInProgress, MissingInputError
from template_scraper.exporter import EXPORT_FILENAME, EXPORT_MIME
from template_scraper.session import ERROR_STATUS, ScraperSession, Step
from template_scraper.table import rows_to_dataframe
from template_scraper.workflow import PARSE_ERROR_MARKER


st.set_page_config(page_title="Web Scraping & Data Organization Tool", layout="wide")

DARK_CSS = """
<style>
.stApp { background-color: #111827; color: #f9fafb; }
.stApp h1, .stApp h2, .stApp h3, .stApp p, .stApp label { color: #f9fafb; }
section[data-testid="stSidebar"] { background-color: #1f2937; }
</style>
"""

STEP_TITLES = {
    Step.UPLOAD: "1 · Upload & Configure",
    Step.PROCESSING: "2 · Processing",
    Step.RESULTS: "3 · Results",
}


def get_session(app_cfg: AppConfig) -> ScraperSession:
    if "scraper" not in st.session_state:
        st.session_state["scraper"] = ScraperSession.from_config(app_cfg)
        st.session_state["upload_key"] = 0
    return st.session_state["scraper"]


def get_client(app_cfg: AppConfig, session: ScraperSession) -> ApiClient:
    client = refresh_client(st.session_state.get("api_client"), app_cfg.api, session.api_logs)
    st.session_state["api_client"] = client
    return client


def render_api_settings(app_cfg: AppConfig, locked: bool) -> AppConfig:
    st.sidebar.header("API Settings")
    if locked:
        st.sidebar.caption("Settings are locked while an extraction is running.")
    app_cfg.api.base_url = st.sidebar.text_input(
        "API Base URL", value=app_cfg.api.base_url, disabled=locked
    )
    app_cfg.api.api_key = st.sidebar.text_input(
        "API Key",
        value=app_cfg.api.api_key,
        type="password",
        help="Sent as a Bearer token",
        disabled=locked,
    )
    app_cfg.api.app_id = st.sidebar.text_input("App ID", value=app_cfg.api.app_id, disabled=locked)
    app_cfg.api.usage_key = st.sidebar.text_input(
        "Usage Key", value=app_cfg.api.usage_key, type="password", disabled=locked
    )
    app_cfg.api.timeout = int(
        st.sidebar.number_input(
            "Request timeout (seconds)",
            min_value=5,
            max_value=600,
            value=int(app_cfg.api.timeout),
            step=5,
            disabled=locked,
        )
    )

    if st.sidebar.button("💾 Save settings", disabled=locked):
        app_cfg.save()
        st.sidebar.success("Settings saved to scraper_config.json")

    return app_cfg


def render_header(session: ScraperSession, client: ApiClient) -> None:
    # every action here reruns the script, so they stay disabled while a run is in flight
    locked = session.processing
    col_title, col_logs, col_delete, col_theme = st.columns([6, 2, 2, 1])
    with col_title:
        st.title("Web Scraping & Data Organization Tool")
    with col_logs:
        label = "Hide API Logs" if session.show_api_logs else "Show API Logs"
        if st.button(label, key="toggle_logs", disabled=locked):
            session.show_api_logs = not session.show_api_logs
            st.rerun()
    with col_delete:
        if session.created_objects and not locked and st.button("Delete Objects", key="delete_objects"):
            try:
                deleted, failed = session.delete_all_objects(client)
            except ExtractionInProgress as e:
                st.warning(str(e))
            else:
                if failed:
                    st.warning(
                        f"Deleted {len(deleted)} object(s); {len(failed)} failed: {', '.join(failed)}"
                    )
                else:
                    st.success("All created objects have been deleted")
    with col_theme:
        if st.button(
            "☀️" if session.dark_mode else "🌙",
            key="toggle_theme",
            help="Toggle dark mode",
            disabled=locked,
        ):
            session.dark_mode = not session.dark_mode
            st.rerun()

    if session.dark_mode:
        st.markdown(DARK_CSS, unsafe_allow_html=True)

    st.caption(" → ".join(
        f"**{title}**" if step == session.step else title for step, title in STEP_TITLES.items()
    ))


def render_api_logs(session: ScraperSession) -> None:
    with st.container(border=True):
        st.subheader("API Call Logs")
        if not session.api_logs:
            st.caption("No API calls yet")
            return
        for entry in session.api_logs:
            st.markdown(f"`{entry.timestamp}` - **{entry.method}** {entry.endpoint}")
            st.code(
                "Request: " + json.dumps(entry.request, ensure_ascii=False, indent=2, default=str)
                + "\nResponse: " + json.dumps(entry.response, ensure_ascii=False, indent=2, default=str),
                language="json",
            )


def render_upload_step(session: ScraperSession) -> None:
    st.markdown("### Upload & Configure")
    st.caption("Upload your CSV template and configure scraping settings")

    col_csv, col_cfg = st.columns(2)
    with col_csv:
        st.markdown("#### CSV Template")
        uploaded = st.file_uploader(
            "Drop your CSV template here or click to browse files",
            type=["csv"],
            key=f"csv_upload_{st.session_state['upload_key']}",
        )
        # the uploader forgets its file while steps 2/3 are shown; the session keeps the template
        if uploaded is not None and uploaded.file_id != st.session_state.get("loaded_file_id"):
            session.load_template(uploaded.name, uploaded.getvalue())
            st.session_state["loaded_file_id"] = uploaded.file_id

        if session.csv_name:
            st.success(f"✅ {session.csv_name}")
            if session.headers:
                st.write("Headers detected:")
                st.markdown(" ".join(f"`{h}`" for h in session.headers))
            else:
                st.warning("No header row found in this file")

    with col_cfg:
        st.markdown("#### Scraping Configuration")
        url = st.text_input(
            "Website URL",
            value=session.website_url,
            placeholder="https://example.com",
            help="Enter the website URL you want to scrape",
        )
        item_limit = st.number_input(
            "Item Limit",
            min_value=MIN_ITEM_LIMIT,
            max_value=MAX_ITEM_LIMIT,
            value=session.item_limit,
            step=1,
            help=f"Maximum number of items to scrape ({MIN_ITEM_LIMIT}-{MAX_ITEM_LIMIT})",
        )

        if st.button(
            "Start Extraction",
            type="primary",
            disabled=not session.can_start(url),
            use_container_width=True,
        ):
            try:
                session.begin_extraction(url, item_limit)
            except (MissingInputError, ExtractionInProgress) as e:
                st.warning(str(e))
            else:
                st.rerun()

    if session.status_message == ERROR_STATUS:
        st.error(session.status_message)
        if session.last_error:
            with st.expander("Error details"):
                st.code(session.last_error)


def render_processing_step(session: ScraperSession, client: ApiClient) -> None:
    st.markdown("### Extracting Data")
    status = st.empty()
    bar = st.progress(session.progress, text=f"{session.progress}% complete")
    status.info(session.status_message or "Starting web scraping...")

    if st.button("Cancel", key="cancel_extraction"):
        session.cancel()
        st.rerun()

    if session.request is None or session.run_started():
        # the script run that started this extraction was interrupted; it is never restarted
        st.warning("This extraction was interrupted. Cancel to return to the upload step.")
        return

    def on_progress(percent: int, message: str) -> None:
        status.info(message)
        bar.progress(percent, text=f"{percent}% complete")

    try:
        session.run_extraction(client, session.request, on_progress=on_progress)
    except Exception as e:
        # run_extraction already handles workflow errors; this is for UI failures
        st.error(f"Extraction failed: {e}")
        with st.expander("Error details"):
            st.code(traceback.format_exc())
        return
    st.rerun()


def render_results_step(session: ScraperSession) -> None:
    col_info, col_download, col_new = st.columns([6, 2, 2])
    with col_info:
        st.markdown("### Extraction Results")
        st.caption(f"Found {len(session.rows)} items")
    with col_download:
        st.download_button(
            "Download CSV",
            data=session.export_csv().encode("utf-8") if session.rows else b"",
            file_name=EXPORT_FILENAME,
            mime=EXPORT_MIME,
            disabled=not session.rows,
            use_container_width=True,
        )
    with col_new:
        if st.button("New Extraction", use_container_width=True):
            session.reset()
            st.session_state["upload_key"] += 1
            st.rerun()

    if not session.rows:
        st.info(
            "🔍 No data found. The extraction process completed but no products were found. "
            "Try adjusting your settings or check the website URL."
        )
        return

    diagnostics = [row for row in session.rows if row.get("error") == PARSE_ERROR_MARKER]
    for row in diagnostics:
        st.warning(row["error"])
        with st.expander("Raw result"):
            st.code(str(row.get("raw_data")))

    if session.headers:
        sort_cols = st.columns(len(session.headers))
        for i, header in enumerate(session.headers):
            arrow = ""
            if session.sort.key == header:
                arrow = " ↑" if session.sort.direction == "asc" else " ↓"
            with sort_cols[i]:
                if st.button(f"{header}{arrow}", key=f"sort_{i}", help=f"Sort by {header}"):
                    session.toggle_sort(header)
                    st.rerun()

    st.dataframe(
        rows_to_dataframe(session.sorted_rows(), session.headers),
        use_container_width=True,
        hide_index=True,
    )


def main():
    configure_logging()

    app_cfg = AppConfig.load()
    session = get_session(app_cfg)
    app_cfg = render_api_settings(app_cfg, locked=session.processing)
    client = get_client(app_cfg, session)

    render_header(session, client)
    if session.show_api_logs:
        render_api_logs(session)

    if session.step == Step.UPLOAD:
        render_upload_step(session)
    elif session.step == Step.PROCESSING:
        render_processing_step(session, client)
    else:
        render_results_step(session)


if __name__ == "__main__":
    main()
