import pandas as pd
import plotly.express as px
import streamlit as st

from conflicts import ICON_TITLES, classify_case
from errors import ORSchedulerError
from hospital_config import LOG_LEVEL, OPENAI_API_KEY
from logging_config import setup_logging
from schedule_manager import ScheduleManager

PRIORITY_COLORS = {'Elective': '#3b82f6', 'Urgent': '#f59e0b', 'Emergent': '#ef4444'}
RISK_COLORS = {'Low': '#22c55e', 'Medium': '#f59e0b', 'High': '#ef4444'}
ICONS = {'PACU': '🛏️', 'SpecialResource': '⚙️', 'HighRisk': '⚠️'}

st.set_page_config(page_title="OR Day Scheduler", layout="wide", page_icon="🏥")

if 'manager' not in st.session_state:
    setup_logging(LOG_LEVEL)
    oracle = None
    if OPENAI_API_KEY:
        from openai_oracle import OpenAIOracle
        oracle = OpenAIOracle()
    manager = ScheduleManager(oracle=oracle)
    manager.load()
    st.session_state['manager'] = manager
    st.session_state['chat'] = manager.start_chat()

manager = st.session_state['manager']


def run(action, success=None):
    try:
        result = action()
    except ORSchedulerError as e:
        st.sidebar.error(e.message)
        return None
    if success:
        st.sidebar.success(success)
    return result


# --- SIDEBAR ---
st.sidebar.title("🏥 OR Control")

# 1. IMPORT
st.sidebar.subheader("1. Import")
uploaded_file = st.sidebar.file_uploader("Upload Daily Manifest (CSV)", type=['csv'])
if uploaded_file and st.sidebar.button("Import Manifest"):
    with st.spinner("Predicting durations..."):
        if run(lambda: manager.import_manifest(uploaded_file), "Manifest imported"):
            st.rerun()

raw_text = st.sidebar.text_area("Or paste a schedule", placeholder="08:00 | Appendectomy | Dr. Bailey | OR 1 | 60")
if raw_text and st.sidebar.button("Parse Text"):
    with st.spinner("Parsing..."):
        if run(lambda: manager.import_text(raw_text), "Schedule parsed"):
            st.rerun()

st.sidebar.divider()

# 2. LIVE OPS
st.sidebar.subheader("2. Live Operations")
store = manager.store()
room_names = store.room_names()
tab1, tab2, tab3 = st.sidebar.tabs(["➕ Add Case", "↕️ Move", "🪄 Optimize"])

with tab1:
    with st.form("add_case", clear_on_submit=True):
        patient_id = st.text_input("Patient ID", placeholder="P007")
        procedure = st.text_input("Procedure")
        surgeon = st.selectbox("Surgeon", [s.name for s in manager.surgeons])
        room = st.selectbox("Room", room_names)
        start = st.text_input("Start Time (HH:mm)", value="07:30")
        estimate = st.number_input("Surgeon Estimate (min)", 10, 720, 90, step=5)
        notes = st.text_area("Conflicts / requirements", placeholder="PACU capacity tight, Requires specialized equipment")
        if st.form_submit_button("Add Case"):
            draft = {
                'patientId': patient_id, 'procedure': procedure, 'surgeon': surgeon, 'room': room,
                'startTime': start, 'surgeonEstimateMinutes': int(estimate),
                'conflicts': [n.strip() for n in notes.split(',') if n.strip()],
            }
            with st.spinner("Enriching case..."):
                if run(lambda: manager.add_case(draft), "Case added"):
                    st.rerun()

with tab2:
    st.write("**Scenario:** Drag a case to another room / time slot.")
    if len(store):
        options = {f"{c.patient_id} · {c.procedure} ({c.start_time})": c.id for c in store.all()}
        picked = st.selectbox("Case", list(options))
        target_room = st.selectbox("Target Room", room_names, key="move_room")
        offset = st.slider("Drop position (px from top of column)", 0, int(manager.grid.total_height), 45, step=15)
        st.caption(f"Drops at {manager.grid.pixels_to_time(offset)}")
        if st.button("Move Case"):
            if run(lambda: manager.move_case(options[picked], target_room, offset), "Case moved"):
                st.rerun()

with tab3:
    st.write("**Scenario:** Close idle gaps between cases.")
    busy = manager.is_busy('reschedule') or len(store) == 0
    if st.button("Compact Schedule", disabled=busy):
        if run(manager.compact, "Schedule compacted"):
            st.rerun()
    if st.button("🪄 Optimize (re-sequence)", disabled=busy):
        with st.spinner("Optimizing..."):
            if run(manager.optimize, "Schedule optimized"):
                st.rerun()

# --- MAIN DASHBOARD ---
st.title("🏥 OR Day Schedule")

stats = manager.analytics()
kpis = stats['kpis']
c1, c2, c3, c4 = st.columns(4)
c1.metric("Total Cases", kpis['total_cases'])
c2.metric("Predicted Utilization", f"{kpis['utilization']}%")
c3.metric("Idle Minutes", kpis['idle_minutes'])
c4.metric("High-Risk Cases", kpis['high_risk_cases'])

schedule_tab, analytics_tab, chat_tab = st.tabs(["📅 Schedule", "📊 Analytics", "💬 Assistant"])

with schedule_tab:
    df = manager.schedule_frame()
    if df.empty:
        st.info("👈 Add cases or upload a manifest to build today's schedule.")
    else:
        # GANTT CHART
        df['Start'] = pd.to_datetime('2024-01-01') + pd.to_timedelta(df['start_mins'], unit='m')
        df['Finish'] = pd.to_datetime('2024-01-01') + pd.to_timedelta(df['turnover_end_mins'], unit='m')
        df['Flags'] = [
            ' '.join(ICONS[i['category']] for i in classify_case(c)) for c in store.all()
        ]
        fig = px.timeline(
            df, x_start="Start", x_end="Finish", y="Room", color="Priority", text="Patient ID",
            hover_data=["Procedure", "Surgeon", "P50", "P90", "Turnover", "Risk", "Conflicts", "Flags"],
            height=550, color_discrete_map=PRIORITY_COLORS,
            category_orders={"Room": room_names + ['Unplaced']},
        )
        fig.layout.xaxis.type = 'date'
        st.plotly_chart(fig, use_container_width=True)

        unplaced = store.unplaced()
        if unplaced:
            st.warning("Not on the grid (unknown room): " + ", ".join(f"{c.patient_id} ('{c.room}')" for c in unplaced))

        with st.expander("Conflict annotations"):
            for c in store.all():
                icons = classify_case(c)
                if icons:
                    text = "; ".join(f"{ICONS[i['category']]} {i['source_text'] or ICON_TITLES[i['category']]}" for i in icons)
                    st.write(f"**{c.patient_id}** {c.procedure}: {text}")

        with st.expander("Detailed Schedule"):
            st.dataframe(df.drop(columns=['Start', 'Finish']))

    st.subheader("Daily Analysis")
    st.markdown(manager.daily_summary())

with analytics_tab:
    if not stats['surgeons']:
        st.info("Add cases to the schedule to see analytics and insights.")
    else:
        surgeon_df = pd.DataFrame([
            {'Surgeon': s, 'Number of Cases': v['case_count'], 'Avg. Duration (min)': v['avg_duration']}
            for s, v in stats['surgeons'].items()
        ])
        st.plotly_chart(
            px.bar(surgeon_df, x='Surgeon', y=['Number of Cases', 'Avg. Duration (min)'], barmode='group',
                   title="Surgeon Caseload & Duration"),
            use_container_width=True,
        )
        room_df = pd.DataFrame([{'Room': r, 'Total Scheduled (min)': m} for r, m in stats['rooms'].items()])
        st.plotly_chart(px.bar(room_df, x='Room', y='Total Scheduled (min)', title="Room Load"), use_container_width=True)

        left, right = st.columns(2)
        left.plotly_chart(
            px.pie(names=list(stats['priority']), values=list(stats['priority'].values()), title="Cases by Priority",
                   color=list(stats['priority']), color_discrete_map=PRIORITY_COLORS),
            use_container_width=True,
        )
        right.plotly_chart(
            px.pie(names=list(stats['risk']), values=list(stats['risk'].values()), title="Cases by Risk",
                   color=list(stats['risk']), color_discrete_map=RISK_COLORS),
            use_container_width=True,
        )

with chat_tab:
    chat = st.session_state['chat']
    for m in chat.messages:
        with st.chat_message('user' if m['sender'] == 'user' else 'assistant'):
            st.markdown(m['text'])
    question = st.chat_input("Ask about today's schedule")
    if question:
        with st.chat_message('user'):
            st.markdown(question)
        with st.chat_message('assistant'):
            try:
                st.write_stream(chat.send(question, store.all()))
            except ORSchedulerError as e:
                st.error(e.message)
