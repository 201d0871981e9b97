import os
import requests
import streamlit as st

API_BASE = os.getenv("TEXTURE_SERVICE_API_BASE", os.getenv("API_BASE", "http://localhost:3022")).rstrip("/")

CONVERSION_LABELS = {
    "btx2png": "BTX → PNG",
    "png2btx": "PNG → BTX",
}
UPLOAD_TYPES = {
    "btx2png": ["btx"],
    "png2btx": ["png"],
}


def _reset_state():
    for key in ["report", "error", "downloads"]:
        if key in st.session_state:
            del st.session_state[key]
    # Bump the uploader key to clear any previously uploaded file widget state
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def _start_conversion(uploaded_files: list, conversion_type: str) -> dict[str, object] | None:
    files = [
        ("files", (f.name, f.getvalue(), f.type or "application/octet-stream"))
        for f in uploaded_files
    ]
    try:
        resp = requests.post(
            f"{API_BASE}/convert",
            files=files,
            data={"conversionType": conversion_type},
            timeout=120,
        )
    except requests.RequestException as e:
        st.session_state["error"] = f"Failed to connect to API: {e}"
        return None
    if resp.status_code != 200:
        st.session_state["error"] = f"Conversion failed: {resp.status_code} {resp.text}"
        return None
    return resp.json()


def _download(path: str) -> bytes | None:
    """Fetch a converted file. The server deletes it after the first download."""
    try:
        resp = requests.get(f"{API_BASE}{path}", timeout=60)
    except requests.RequestException as e:
        st.session_state["error"] = f"Download failed: {e}"
        return None
    if resp.status_code == 404:
        st.session_state["error"] = "File not found (it may have been downloaded already)"
        return None
    if resp.status_code != 200:
        st.session_state["error"] = f"Download error: {resp.status_code} {resp.text}"
        return None
    return resp.content


def main() -> None:
    st.set_page_config(page_title="Texture Conversion Service", page_icon="🧱", layout="centered")
    st.title("🧱 Texture Conversion Service")
    st.caption(f"API base: {API_BASE}")

    if st.button("Restart", type="secondary"):
        _reset_state()
        st.rerun()

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0

    conversion_type = st.radio(
        "Conversion",
        options=list(CONVERSION_LABELS),
        format_func=CONVERSION_LABELS.get,
        horizontal=True,
    )
    uploaded = st.file_uploader(
        "Upload textures",
        type=UPLOAD_TYPES[conversion_type],
        accept_multiple_files=True,
        key=f"uploader-{st.session_state['upload_key']}",
    )

    if uploaded and "report" not in st.session_state and st.button("Convert", type="primary"):
        with st.spinner("Converting..."):
            report = _start_conversion(uploaded, conversion_type)
        if report is not None:
            st.session_state["report"] = report
            st.session_state["downloads"] = {}

    report = st.session_state.get("report")
    if report:
        if report.get("success"):
            st.success(str(report.get("message")))
        else:
            st.error(str(report.get("message")))

        downloads: dict[str, bytes] = st.session_state.setdefault("downloads", {})
        for link in report.get("downloadLinks", []):
            name, path = str(link["name"]), str(link["path"])
            if path not in downloads:
                data = _download(path)
                if data is None:
                    continue
                downloads[path] = data
            st.download_button(
                label=f"Download {name}",
                data=downloads[path],
                file_name=name,
                key=f"dl-{path}",
            )

        errors = report.get("errors", [])
        if errors:
            with st.expander(f"{len(errors)} file(s) failed", expanded=True):
                for item in errors:
                    st.write(f"**{item['file']}**: {item['error']}")

    if err := st.session_state.get("error"):
        st.error(err)


if __name__ == "__main__":
    main()
