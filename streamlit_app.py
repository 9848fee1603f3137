from __future__ import annotations

import json
import uuid

import requests
import streamlit as st


st.set_page_config(page_title="Hostel AI Agent", page_icon="🏠", layout="wide")


def _call_api(method: str, path: str, payload: dict | None = None, params: dict | None = None) -> tuple[int, dict]:
    base_url = st.session_state.get("api_base_url", "http://localhost:3002")
    url = base_url.rstrip("/") + path
    try:
        response = requests.request(method, url, json=payload, params=params, timeout=120)
    except requests.RequestException as exc:
        return 0, {"error": str(exc)}
    data = {}
    try:
        data = response.json()
    except json.JSONDecodeError:
        pass
    return response.status_code, data


def _chat_interface() -> None:
    st.header("Chat with the Hostel Assistant")

    if "messages" not in st.session_state:
        st.session_state["messages"] = []

    for entry in st.session_state["messages"]:
        with st.chat_message(entry["role"]):
            st.markdown(entry["content"])

    user_prompt = st.chat_input("Ask about houses, rooms, tenants, invoices...")
    if not user_prompt:
        return

    st.session_state["messages"].append({"role": "user", "content": user_prompt})
    with st.chat_message("user"):
        st.markdown(user_prompt)

    payload = {
        "message": user_prompt,
        "sessionId": st.session_state["session_id"],
        "userId": st.session_state.get("user_id") or None,
    }
    token = st.session_state.get("auth_token")
    if token:
        payload["authToken"] = token

    status, data = _call_api("POST", "/api/chat", payload)
    if status != 200:
        assistant_reply = f"Request failed with status {status}. Response: {data}"
    else:
        assistant_reply = data.get("response", "(no reply)")
        tools_called = data.get("toolsCalled") or []
        metadata_bits = [f"authenticated: {data.get('isAuthenticated', False)}"]
        if tools_called:
            metadata_bits.append(f"tools: {', '.join(tools_called)}")
        assistant_reply += f"\n\n_{', '.join(metadata_bits)}_"

    st.session_state["messages"].append({"role": "assistant", "content": assistant_reply})
    with st.chat_message("assistant"):
        st.markdown(assistant_reply)


def _sidebar_controls() -> None:
    st.sidebar.title("Session Settings")
    st.session_state["api_base_url"] = st.sidebar.text_input(
        "API base URL",
        st.session_state.get("api_base_url", "http://localhost:3002"),
    )
    if "session_id" not in st.session_state:
        st.session_state["session_id"] = f"session-{uuid.uuid4().hex}"
    st.session_state["session_id"] = st.sidebar.text_input("Session ID", st.session_state["session_id"])
    st.session_state["user_id"] = st.sidebar.text_input("User ID (optional)", st.session_state.get("user_id", ""))
    st.session_state["auth_token"] = st.sidebar.text_input(
        "Auth token (optional)",
        st.session_state.get("auth_token", ""),
        type="password",
    )

    if st.sidebar.button("Check health"):
        status, data = _call_api("GET", "/api/health")
        if status == 200:
            st.sidebar.json(data)
        else:
            st.sidebar.error(f"Health check failed ({status}): {data}")

    if st.sidebar.button("Logout"):
        _call_api("POST", "/api/session/logout", {"sessionId": st.session_state["session_id"]})
        st.session_state["auth_token"] = ""
        st.sidebar.success("Session cleared")

    if st.sidebar.button("Reset conversation"):
        _call_api("POST", "/api/chat/clear-history", {"sessionId": st.session_state["session_id"]})
        st.session_state["messages"] = []
        st.rerun()


def main() -> None:
    _sidebar_controls()
    _chat_interface()


if __name__ == "__main__":
    main()
