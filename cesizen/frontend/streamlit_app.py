from datetime import date

import altair as alt
import pandas as pd
import requests
import streamlit as st

st.set_page_config(page_title="CESIZen", page_icon="🌿", layout="centered")

API_BASE = st.text_input("API base URL", value="http://127.0.0.1:8000")

if "token" not in st.session_state:
    st.session_state.token = None
if "last_result" not in st.session_state:
    st.session_state.last_result = None


def api_headers() -> dict:
    if st.session_state.token:
        return {"Authorization": f"Bearer {st.session_state.token}"}
    return {}


def api_url(path: str) -> str:
    return f"{API_BASE}{path}"


def safe_json(resp: requests.Response):
    content_type = resp.headers.get("content-type", "")
    if "application/json" not in content_type:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def show_response_error(resp: requests.Response, path: str, fallback_message: str) -> None:
    payload = safe_json(resp)
    if payload and isinstance(payload, dict):
        detail = payload.get("detail", fallback_message)
        st.error(f"{fallback_message} ({resp.status_code}) | {api_url(path)} | {detail}")
        return
    text = (resp.text or "").strip()
    st.error(f"{fallback_message} ({resp.status_code}) | {api_url(path)} | {text[:500] or 'No response body.'}")


def api_request(method: str, path: str, **kwargs):
    try:
        return requests.request(method, api_url(path), headers=api_headers(), timeout=10, **kwargs)
    except requests.RequestException as exc:
        st.error(f"Request failed: {exc}")
        return None


def render_result(result: dict) -> None:
    st.metric("Score", result["total_score"])
    st.subheader(result["risk_label"])
    st.write(result["interpretation"])
    events = pd.DataFrame(result["selected_events"])
    if not events.empty:
        st.dataframe(events[["label", "weight", "category"]], hide_index=True)
    level = result["risk_tier"].lower()
    resp = api_request("GET", "/api/recommendations", params={"stressLevel": level, "limit": 4})
    if resp is not None and resp.ok:
        st.markdown("**Recommandations**")
        for item in resp.json().get("recommendations", []):
            st.write(f"- {item['title']} ({item['type']})")


st.title("CESIZen")
st.caption("Outil d'auto-évaluation, pas un diagnostic médical.")

health_resp = api_request("GET", "/health")
if health_resp is None or not health_resp.ok:
    st.error("Backend unavailable. Start it with: uvicorn cesizen.backend.app.main:app --reload --port 8000")

account_tab, diagnostic_tab, history_tab, journal_tab = st.tabs(
    ["Compte", "Diagnostic", "Historique", "Journal des émotions"]
)

with account_tab:
    st.subheader("Créer un compte")
    with st.form("register_form"):
        reg_email = st.text_input("Email", key="reg_email")
        reg_password = st.text_input("Mot de passe", type="password", key="reg_password")
        if st.form_submit_button("Créer"):
            resp = api_request("POST", "/auth/register", json={"email": reg_email, "password": reg_password})
            if resp is not None and resp.ok:
                st.session_state.token = (safe_json(resp) or {}).get("access_token")
                st.success("Compte créé, vous êtes connecté.")
            elif resp is not None:
                show_response_error(resp, "/auth/register", "Registration failed.")

    st.subheader("Connexion")
    with st.form("login_form"):
        login_email = st.text_input("Email", key="login_email")
        login_password = st.text_input("Mot de passe", type="password", key="login_password")
        if st.form_submit_button("Se connecter"):
            resp = api_request("POST", "/auth/login", data={"username": login_email, "password": login_password})
            if resp is not None and resp.ok:
                st.session_state.token = (safe_json(resp) or {}).get("access_token")
                st.success("Connecté.")
            elif resp is not None:
                show_response_error(resp, "/auth/login", "Login failed.")

    if st.session_state.token and st.button("Se déconnecter"):
        st.session_state.token = None
        st.rerun()

with diagnostic_tab:
    st.subheader("Échelle de Holmes & Rahe")
    st.caption("Cochez les événements vécus au cours des 12 derniers mois.")
    questions_resp = api_request("GET", "/api/diagnostic/questions")
    if questions_resp is not None and questions_resp.ok:
        events = questions_resp.json().get("events", [])
        with st.form("diagnostic_form"):
            selected = []
            current_category = None
            for event in events:
                if event["category"] != current_category:
                    current_category = event["category"]
                    st.markdown(f"**{current_category}**")
                if st.checkbox(f"{event['label']} ({event['weight']})", key=f"event_{event['id']}"):
                    selected.append(event["id"])
            if st.form_submit_button("Calculer mon score"):
                resp = api_request("POST", "/api/diagnostic/submit", json={"selectedEventIds": selected})
                if resp is not None and resp.ok:
                    st.session_state.last_result = resp.json()
                elif resp is not None:
                    show_response_error(resp, "/api/diagnostic/submit", "Diagnostic failed.")
    elif questions_resp is not None:
        show_response_error(questions_resp, "/api/diagnostic/questions", "Unable to load questions.")

    if st.session_state.last_result:
        render_result(st.session_state.last_result)
        if not st.session_state.token:
            st.info("Connectez-vous pour conserver vos résultats.")

with history_tab:
    if not st.session_state.token:
        st.warning("Connectez-vous dans l'onglet Compte pour voir votre historique.")
    else:
        history_resp = api_request("GET", "/api/diagnostic/history")
        stats_resp = api_request("GET", "/api/diagnostic/stats")
        if stats_resp is not None and stats_resp.ok:
            stats = stats_resp.json()
            col1, col2, col3 = st.columns(3)
            col1.metric("Diagnostics", stats["total_diagnostics"])
            col2.metric("Score moyen", stats["average_score"] or 0)
            col3.metric("Tendance", stats["recent_trend"])
        if history_resp is not None and history_resp.ok:
            history = history_resp.json()
            if not history:
                st.info("Aucun diagnostic enregistré.")
            else:
                frame = pd.DataFrame(history)
                frame["created_at"] = pd.to_datetime(frame["created_at"])
                chart = (
                    alt.Chart(frame)
                    .mark_line(point=True)
                    .encode(
                        x=alt.X("created_at:T", title="Date"),
                        y=alt.Y("total_score:Q", title="Score"),
                        tooltip=["created_at:T", "total_score:Q", "risk_label:N"],
                    )
                )
                rules = alt.Chart(pd.DataFrame({"y": [150, 300]})).mark_rule(strokeDash=[4, 4]).encode(y="y:Q")
                st.altair_chart(chart + rules, use_container_width=True)
                for item in history:
                    cols = st.columns([4, 1])
                    cols[0].write(f"{item['created_at'][:10]} | {item['total_score']} | {item['risk_label']}")
                    if cols[1].button("Supprimer", key=f"del_{item['result_id']}"):
                        resp = api_request("DELETE", f"/api/diagnostic/history/{item['result_id']}")
                        if resp is not None and resp.ok:
                            st.rerun()

with journal_tab:
    if not st.session_state.token:
        st.warning("Connectez-vous dans l'onglet Compte pour tenir votre journal.")
    else:
        emotions_resp = api_request("GET", "/api/emotions")
        emotions = emotions_resp.json() if emotions_resp is not None and emotions_resp.ok else []
        by_name = {emotion["name"]: emotion["id"] for emotion in emotions}
        with st.form("journal_form"):
            name = st.selectbox("Émotion", list(by_name))
            intensity = st.slider("Intensité", 1, 10, 5)
            notes = st.text_area("Notes")
            entry_date = st.date_input("Date", value=date.today())
            if st.form_submit_button("Enregistrer") and name:
                payload = {
                    "emotion_id": by_name[name],
                    "intensity": intensity,
                    "notes": notes,
                    "entry_date": entry_date.isoformat(),
                }
                resp = api_request("POST", "/api/emotions/entries", json=payload)
                if resp is not None and resp.ok:
                    st.success("Entrée enregistrée.")
                elif resp is not None:
                    show_response_error(resp, "/api/emotions/entries", "Unable to save entry.")

        period = st.radio("Période", ["week", "month", "quarter", "year"], index=1, horizontal=True)
        report_resp = api_request("GET", "/api/emotions/report", params={"period": period})
        if report_resp is not None and report_resp.ok:
            summary = pd.DataFrame(report_resp.json().get("summary", []))
            if summary.empty:
                st.info("Aucune entrée sur la période.")
            else:
                chart = (
                    alt.Chart(summary)
                    .mark_bar()
                    .encode(
                        x=alt.X("date:T", title="Date"),
                        y=alt.Y("count:Q", title="Entrées"),
                        color=alt.Color("emotion_name:N", title="Émotion"),
                        tooltip=["emotion_name:N", "count:Q", "average_intensity:Q"],
                    )
                )
                st.altair_chart(chart, use_container_width=True)
