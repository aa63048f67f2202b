import io
import os
from pathlib import Path

import requests
import streamlit as st

API_BASE = os.getenv("DOCX2PDF_API_BASE", os.getenv("API_BASE", "http://localhost:3000")).rstrip("/")
REQUEST_TIMEOUT = float(os.getenv("DOCX2PDF_UI_TIMEOUT", "120"))


def _reset_state():
    for key in ["pdf_bytes", "pdf_name", "error"]:
        if key in st.session_state:
            del st.session_state[key]
    # Bump the uploader key to clear any previously uploaded file widget state
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def _error_message(resp: requests.Response) -> str:
    try:
        detail = resp.json().get("detail")
    except ValueError:
        return f"{resp.status_code} {resp.text}"
    if isinstance(detail, dict):
        return f"{resp.status_code} {detail.get('message', detail)}"
    return f"{resp.status_code} {detail}"


def _convert(uploaded_file: io.BytesIO, *, keep_active: bool = False) -> bytes | None:
    files = {
        "file": (
            uploaded_file.name,
            uploaded_file.getvalue(),
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        )
    }
    params = {"keep_active": "true" if keep_active else "false"}
    try:
        resp = requests.post(f"{API_BASE}/convert", files=files, params=params, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        st.session_state["error"] = f"Failed to connect to API: {e}"
        return None
    if resp.status_code != 200:
        st.session_state["error"] = f"Conversion failed: {_error_message(resp)}"
        return None
    return resp.content


def main() -> None:
    st.set_page_config(page_title="DOCX to PDF", page_icon="📄", layout="centered")
    st.title("📄 DOCX to PDF")
    st.caption(f"API base: {API_BASE}")

    if st.button("Restart", type="secondary"):
        _reset_state()
        st.rerun()

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0
    uploaded = st.file_uploader(
        "Upload a Word document",
        type=["docx"],
        key=f"uploader-{st.session_state['upload_key']}",
    )
    keep_active = st.checkbox("Keep Word running after conversion", value=False)

    if uploaded and "pdf_bytes" not in st.session_state and st.button("Convert", type="primary"):
        with st.spinner("Converting..."):
            pdf = _convert(uploaded, keep_active=keep_active)
        if pdf is not None:
            st.session_state["pdf_bytes"] = pdf
            st.session_state["pdf_name"] = f"{Path(uploaded.name).stem or 'document'}.pdf"
            st.toast("Conversion complete", icon="✅")

    if "pdf_bytes" in st.session_state:
        st.success("Conversion complete!")
        st.download_button(
            label="Download PDF",
            data=st.session_state["pdf_bytes"],
            file_name=st.session_state.get("pdf_name", "document.pdf"),
            mime="application/pdf",
        )

    if err := st.session_state.get("error"):
        st.error(err)


if __name__ == "__main__":
    main()
