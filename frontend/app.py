import os

import requests
import streamlit as st
from pydantic import TypeAdapter, ValidationError

from knowthepast.models.map_model import MapCommand, MapType
from knowthepast.models.place_model import CATEGORIES, Place
from knowthepast.models.story_model import ImagePayload, ImageStatus, Story
from knowthepast.services.session_state import (
    NO_VISUAL_CONTENT_MESSAGE,
    ActivePanel,
    ErrorKind,
    ExplorerSession,
    Result,
)

# Page configuration
st.set_page_config(
    page_title="Know the Past",
    page_icon="🗺️",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS for better UI
st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        color: #818CF8;
        text-align: center;
        padding: 1rem 0;
        font-weight: bold;
    }
    .panel {
        padding: 1rem;
        border-radius: 0.75rem;
        background-color: rgba(17, 24, 39, 0.8);
        margin: 0.5rem 0;
    }
    .detail-item {
        display: flex;
        gap: 0.75rem;
        margin: 0.5rem 0;
    }
    .image-error {
        padding: 3rem 1rem;
        text-align: center;
        color: #F87171;
        background-color: #1F2937;
        border-radius: 0.5rem;
    }
    .stButton>button {
        width: 100%;
        border-radius: 9999px;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)

# Backend API configuration
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")
MAPS_API_KEY = os.getenv("MAPS_API_KEY", "")

COMMANDS_ADAPTER = TypeAdapter(list[MapCommand])

if not MAPS_API_KEY:
    st.error("MAPS_API_KEY is not set. The map cannot be initialized without a map-provider key.")
    st.stop()

# Initialize session state
if "explorer" not in st.session_state:
    st.session_state.explorer = ExplorerSession()

explorer: ExplorerSession = st.session_state.explorer


def post_backend(path: str, payload: dict, timeout: float, failure: ErrorKind = ErrorKind.GENERATION) -> Result:
    """POST to the backend and turn every failure into a Result."""
    try:
        response = requests.post(f"{BACKEND_URL}{path}", json=payload, timeout=timeout)
    except requests.exceptions.ConnectionError:
        return Result.fail(ErrorKind.TRANSPORT, "Cannot connect to backend. Make sure the backend is running on port 8000.")
    except requests.exceptions.Timeout:
        return Result.fail(ErrorKind.TRANSPORT, "Request timed out. Please try again.")
    except requests.exceptions.RequestException as e:
        return Result.fail(ErrorKind.TRANSPORT, f"An error occurred: {str(e)}")

    if response.status_code == 503:
        return Result.fail(ErrorKind.CONFIGURATION, response.json().get("detail", "Backend is not configured."))
    if not response.ok:
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        return Result.fail(failure, str(detail))
    return Result.ok(response.json())


def check_backend_health() -> bool:
    """Check if backend is running."""
    try:
        response = requests.get(f"{BACKEND_URL}/health", timeout=2)
        return response.status_code == 200
    except requests.exceptions.RequestException:
        return False


def parse(result: Result, parser) -> Result:
    if not result.is_ok:
        return result
    try:
        return Result.ok(parser(result.value))
    except ValidationError as e:
        return Result.fail(ErrorKind.GENERATION, f"Unexpected response from backend: {e.error_count()} error(s)")


def discover(category: str):
    epoch = explorer.begin_discovery(category)
    with st.spinner("Discovering a place for you..."):
        result = parse(post_backend("/places/discover", {"category": category}, timeout=60), Place.model_validate)
    if explorer.resolve_discovery(epoch, result) and result.is_ok:
        place_json = result.value.model_dump(mode="json", by_alias=True)
        view = parse(
            post_backend("/map/view", {"place": place_json}, timeout=20),
            lambda data: COMMANDS_ADAPTER.validate_python(data["commands"])
        )
        explorer.resolve_map(epoch, view)


def load_story():
    epoch = explorer.begin_story()
    if epoch is None:
        return
    place_json = explorer.selected_place.model_dump(mode="json", by_alias=True)
    with st.spinner("Creating visual story..."):
        result = parse(post_backend("/story", {"place": place_json}, timeout=180), Story.model_validate)
    explorer.resolve_story(epoch, result)


def load_pending_image() -> bool:
    """Fetch one missing slide image. Returns False when none are left."""
    pending = explorer.next_pending_image()
    if pending is None:
        return False
    index, prompt = pending
    epoch = explorer.epoch
    cached = explorer.cached_image(prompt)
    if cached is not None:
        result = Result.ok(cached)
    else:
        result = parse(
            post_backend("/images/render", {"prompt": prompt}, timeout=90, failure=ErrorKind.RENDER),
            ImagePayload.model_validate
        )
    explorer.resolve_slide_image(epoch, index, result)
    return True


def render_info_panel(place: Place):
    expanded = explorer.active_panel == ActivePanel.INFO
    header_cols = st.columns([6, 1, 1])
    header_cols[0].subheader(place.name)
    if header_cols[1].button("▾" if expanded else "▸", key="toggle_info", help="Toggle details"):
        explorer.toggle_panel(ActivePanel.INFO)
        st.rerun()
    if header_cols[2].button("✕", key="close_panels", help="Close"):
        explorer.close()
        st.rerun()

    if expanded:
        st.write(place.description)
        for detail in place.details:
            st.markdown(
                f'<div class="detail-item"><span>{detail.icon.glyph}</span>'
                f'<span><b>{detail.label}</b><br>{detail.value}</span></div>',
                unsafe_allow_html=True
            )


def render_visual_panel():
    expanded = explorer.active_panel == ActivePanel.VISUAL
    header_cols = st.columns([7, 1])
    title = "Visuals" if not explorer.story.is_loading else "Retrieving..."
    header_cols[0].subheader(title)
    if header_cols[1].button("▾" if expanded else "▸", key="toggle_visual", help="Toggle visual story"):
        explorer.toggle_panel(ActivePanel.VISUAL)
        st.rerun()

    if not expanded:
        return

    if explorer.needs_story:
        load_story()

    story = explorer.story
    if story.is_loading:
        st.info("Creating visual story...")
        return
    if story.error:
        st.error(story.error)
        return
    if story.has_no_content:
        st.caption(NO_VISUAL_CONTENT_MESSAGE)
        return

    current = story.current
    if current is None:
        return

    if current.image.status == ImageStatus.LOADED and current.image.image is not None:
        st.image(current.image.image.to_bytes(), caption=current.slide.image_prompt, use_container_width=True)
    elif current.image.status == ImageStatus.ERROR:
        st.markdown(f'<div class="image-error">{current.image.error}</div>', unsafe_allow_html=True)
    else:
        st.info("Generating...")

    nav = st.columns([1, 2, 1])
    if nav[0].button("‹", key="prev_slide", help="Previous slide"):
        explorer.previous_slide()
        st.rerun()
    nav[1].markdown(
        f"<p style='text-align: center;'>{story.current_index + 1} / {len(story.slides)}</p>",
        unsafe_allow_html=True
    )
    if nav[2].button("›", key="next_slide", help="Next slide"):
        explorer.next_slide()
        st.rerun()

    st.markdown(f"### {current.slide.title}")
    st.write(current.slide.subtitle)
    for point in current.slide.key_points:
        st.markdown(f"- {point}")

    # Slides are shown first; images fill in one per rerun
    if load_pending_image():
        st.rerun()


# Header
st.markdown('<div class="main-header">🗺️ Know the Past</div>', unsafe_allow_html=True)

# Sidebar: the category dock
with st.sidebar:
    st.header("🧭 Explore")

    backend_status = check_backend_health()
    if not backend_status:
        st.warning("⚠️ Backend Disconnected")
        st.code("cd backend && python run.py", language="bash")

    for category in CATEGORIES:
        if st.button(
            f"{category.emoji} {category.name}",
            key=f"category_{category.key}",
            disabled=explorer.is_discovering or not backend_status,
            use_container_width=True
        ):
            discover(category.key)
            st.rerun()

    st.divider()

    next_type = "Terrain" if explorer.map_widget.map_type == MapType.SATELLITE else "Satellite (3D)"
    if st.button(f"Switch to {next_type} view", key="toggle_map_type"):
        explorer.toggle_map_type()
        st.rerun()

# Error banner
if explorer.discovery_error:
    cols = st.columns([12, 1])
    cols[0].error(explorer.discovery_error)
    if cols[1].button("×", key="dismiss_error"):
        explorer.dismiss_error()
        st.rerun()

place = explorer.selected_place
map_col, panel_col = st.columns([3, 2]) if place else (st.container(), None)

with map_col:
    st.image(explorer.map_widget.render_url(MAPS_API_KEY), use_container_width=True)

if place is not None and panel_col is not None:
    with panel_col:
        with st.container(border=True):
            render_info_panel(place)
        with st.container(border=True):
            render_visual_panel()
