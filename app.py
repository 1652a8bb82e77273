from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
import streamlit as st

from weekplanner.audio import ChimePlayer
from weekplanner.backup import backup_filename, export_backup, import_backup
from weekplanner.errors import BackupError
from weekplanner.logging_config import setup_logging
from weekplanner.models import CATEGORIES, DAYS_OF_WEEK, Todo, Week
from weekplanner.persistence import SaveScheduler
from weekplanner.sessions import CompletionToggle, EditSession
from weekplanner.storage import JsonFileStorage, load_store, resolve_db_path
from weekplanner.transfer import DragSource, DropTarget, TransferCoordinator


# -----------------------------
# App setup
# -----------------------------

st.set_page_config(page_title="Weekly Planner", layout="wide")

DB_PATH = resolve_db_path()


@st.cache_resource(show_spinner=False)
def _configure_logging() -> bool:
    setup_logging()
    return True


def _queue_chime(samples: np.ndarray, sample_rate: int) -> None:
    st.session_state["chime"] = (samples, sample_rate)


def init_session() -> None:
    if "store" in st.session_state:
        return
    storage = JsonFileStorage(DB_PATH)
    store = load_store(storage)
    st.session_state["store"] = store
    st.session_state["saver"] = SaveScheduler(store, storage)
    st.session_state["transfer"] = TransferCoordinator(store)
    st.session_state["editor"] = EditSession(store)
    st.session_state["toggle"] = CompletionToggle(store, audio=ChimePlayer(_queue_chime))


_configure_logging()
init_session()

store = st.session_state["store"]
saver: SaveScheduler = st.session_state["saver"]
transfer: TransferCoordinator = st.session_state["transfer"]
editor: EditSession = st.session_state["editor"]
toggle: CompletionToggle = st.session_state["toggle"]


# -----------------------------
# Helpers for tables
# -----------------------------

def pool_df(todos: List[Todo]) -> pd.DataFrame:
    rows = [
        {"id": t.id, "text": t.text, "duration": t.duration, "urgent": t.urgent, "important": t.important}
        for t in todos
    ]
    return pd.DataFrame(rows) if rows else pd.DataFrame(columns=["id", "text", "duration", "urgent", "important"])


def load_df() -> pd.DataFrame:
    rows = []
    for day, stats in store.daily_load.items():
        rows.append(
            {
                "day": day.title(),
                "minutes": stats["total"],
                "load %": round(stats["percentage"], 1),
                "tier": stats["tier"],
            }
        )
    return pd.DataFrame(rows)


def week_tasks(week: Week) -> List[Tuple[str, str, Todo]]:
    return [(day, cat, t) for day in DAYS_OF_WEEK for cat in CATEGORIES for t in week[day][cat]]


def task_label(todo: Todo) -> str:
    return f"{todo.text} ({todo.duration} min) #{todo.id}"


# -----------------------------
# Sidebar: navigation, pool, data
# -----------------------------

st.sidebar.title("Weekly Planner")

c1, c2, c3 = st.sidebar.columns(3)
with c1:
    if st.button("◀", use_container_width=True):
        store.navigate_week(-1)
        st.rerun()
with c2:
    if st.button("Today", use_container_width=True):
        store.go_to_current_week()
        st.rerun()
with c3:
    if st.button("▶", use_container_width=True):
        store.navigate_week(1)
        st.rerun()

st.sidebar.markdown(f"**{store.current_week_key}** · {store.week_date_range}")
st.sidebar.caption(f"{saver.status} · DB: `{DB_PATH}`")

st.sidebar.divider()
st.sidebar.subheader("Add task")
with st.sidebar.form("todo_add", clear_on_submit=True):
    text = st.text_input("Task", value="")
    duration = st.text_input("Duration (min)", value="30")
    submitted = st.form_submit_button("Add to backlog")
if submitted:
    if store.add_todo(text, duration) is None:
        st.sidebar.error("Task text is required.")
    else:
        st.rerun()

st.sidebar.subheader("Backlog")
st.sidebar.dataframe(pool_df(store.backlog), use_container_width=True, hide_index=True)

st.sidebar.subheader("Habits")
st.sidebar.dataframe(pool_df(store.basics_templates), use_container_width=True, hide_index=True)

st.sidebar.divider()
st.sidebar.subheader("Data")
st.sidebar.download_button(
    "Export backup",
    data=export_backup(store),
    file_name=backup_filename(store.today),
    mime="application/json",
)
upload = st.sidebar.file_uploader("Import backup", type=["json"])
if upload is not None and st.sidebar.button("Replace all data with backup"):
    try:
        import_backup(store, upload.getvalue())
    except BackupError as exc:
        st.sidebar.error(str(exc))
    else:
        st.sidebar.success("Data imported successfully!")
        st.rerun()


# -----------------------------
# Week overview
# -----------------------------

st.title(f"Week {store.current_week_key}")

if "chime" in st.session_state:
    samples, rate = st.session_state.pop("chime")
    st.audio(samples, sample_rate=rate, autoplay=True)

st.subheader("Daily load")
st.dataframe(load_df(), use_container_width=True, hide_index=True)

week = store.week
labels = store.week_date_labels
columns = st.columns(len(DAYS_OF_WEEK))
for col, day, label in zip(columns, DAYS_OF_WEEK, labels):
    with col:
        stats = store.daily_load[day]
        marker = {"current": "🟢 ", "past": "", "future": ""}[store.day_relation(day)]
        st.markdown(f"**{marker}{day.title()}**  \n{label}")
        st.progress(int(stats["percentage"]), text=f"{stats['total']} min")
        for category in CATEGORIES:
            highlight = " ⬇" if transfer.is_drop_target(day, category) else ""
            st.caption(f"{category.upper()}{highlight}")
            for todo in week[day][category]:
                star = " ✨" if toggle.just_completed_id == todo.id else ""
                checked = st.checkbox(
                    f"{todo.text}{star}",
                    value=todo.completed,
                    key=f"done_{store.current_week_key}_{todo.id}",
                )
                if checked != todo.completed:
                    toggle.toggle(day, category, todo.id)
                    st.rerun()
            for _ in range(store.remaining_slots(day, category)):
                st.markdown("<span style='opacity:0.3'>·</span>", unsafe_allow_html=True)


# -----------------------------
# Quick add
# -----------------------------

st.divider()
st.subheader("Quick add to a day")
with st.form("quick_add", clear_on_submit=True):
    qc1, qc2, qc3 = st.columns([2, 1, 1])
    with qc1:
        quick_text = st.text_input("Task", value="", key="quick_text")
    with qc2:
        quick_day = st.selectbox("Day", DAYS_OF_WEEK, key="quick_day")
    with qc3:
        quick_cat = st.selectbox("Category", CATEGORIES, index=CATEGORIES.index("work"), key="quick_cat")
    quick_submitted = st.form_submit_button("Add")
if quick_submitted and store.add_todo_to_day(quick_day, quick_cat, quick_text, 30) is not None:
    st.rerun()


# -----------------------------
# Move (drag & drop)
# -----------------------------

st.divider()
st.subheader("Move a task")

POOL_TARGET = "Pool"
targets = [POOL_TARGET] + [f"{d} / {c}" for d in DAYS_OF_WEEK for c in CATEGORIES]


def parse_target(value: str) -> DropTarget:
    if value == POOL_TARGET:
        return DropTarget.pool()
    day, category = value.split(" / ")
    return DropTarget.slot(day, category)


if transfer.state == "idle":
    sources: List[Tuple[str, DragSource]] = [
        (f"[pool] {task_label(t)}", DragSource.from_pool(t)) for t in store.todo_pool
    ]
    sources += [
        (f"[{d.title()} / {c}] {task_label(t)}", DragSource.from_week(store.current_week_key, d, c, t))
        for d, c, t in week_tasks(week)
    ]
    if not sources:
        st.info("Nothing to move.")
    else:
        picked = st.selectbox("Task", [label for label, _ in sources])
        if st.button("Pick up"):
            transfer.begin_drag(dict(sources)[picked])
            st.rerun()
else:
    dragged = transfer.source.todo if transfer.source else None
    st.write(f"Moving **{dragged.text if dragged else '?'}**")
    target_value = st.selectbox("Drop on", targets)
    transfer.hover(parse_target(target_value))
    mc1, mc2 = st.columns(2)
    with mc1:
        if st.button("Drop", type="primary"):
            target = transfer.target
            if target is not None and target.type == "pool":
                moved = transfer.drop_on_pool()
            else:
                moved = transfer.drop_on_grid(target.day, target.category)
            if not moved:
                st.warning("Nothing changed (goal slot already taken, or not allowed).")
            else:
                st.rerun()
    with mc2:
        if st.button("Cancel"):
            transfer.cancel()
            st.rerun()


# -----------------------------
# Edit
# -----------------------------

st.divider()
st.subheader("Edit a task")

editable: List[Todo] = [t for _, _, t in week_tasks(week)] + list(store.todo_pool)
if not editable:
    st.info("No tasks yet.")
elif editor.draft is None:
    options = {task_label(t): t for t in editable}
    chosen: Optional[str] = st.selectbox("Task to edit", list(options))
    if st.button("Edit") and chosen:
        editor.begin(options[chosen])
        st.rerun()
else:
    draft = editor.draft
    draft.text = st.text_input("Text", value=draft.text, key=f"edit_text_{draft.id}")
    draft.duration = st.text_input("Duration (min)", value=str(draft.duration), key=f"edit_dur_{draft.id}")
    ec1, ec2 = st.columns(2)
    with ec1:
        if st.button("Save changes"):
            editor.commit()
            st.rerun()
    with ec2:
        if st.button("Discard"):
            editor.discard()
            st.rerun()
