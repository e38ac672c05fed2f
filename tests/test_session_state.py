"""
Tests for the explorer session reducer and panel controller
"""

import itertools

import pytest

from knowthepast.models.map_model import ClearMarker, LatLng, MapType, PanTo, PlaceMarker, SetZoom
from knowthepast.models.story_model import (
    IMAGE_FAILED_MESSAGE,
    ImagePayload,
    ImageStatus,
    Slide,
    SlideImage,
    Story,
    StorySlide,
)
from knowthepast.services.session_state import (
    DISCOVERY_FAILED_PREFIX,
    ActivePanel,
    ErrorKind,
    ExplorerSession,
    PanelController,
    Result,
)


def make_story(count: int, slide_factory) -> Story:
    return Story(
        place_name="Hegra",
        slides=[
            StorySlide(
                slide=Slide.model_validate(slide_factory(i)),
                image=SlideImage(status=ImageStatus.LOADED),
            )
            for i in range(count)
        ],
    )


def pending_story(prompts) -> Story:
    return Story(
        place_name="Hegra",
        slides=[
            StorySlide(slide=Slide(slide_type="overview", title=f"Slide {i}", subtitle="", key_points=(), image_prompt=prompt))
            for i, prompt in enumerate(prompts)
        ],
    )


def point_commands(place):
    position = LatLng(lat=place.latitude, lng=place.longitude)
    return [ClearMarker(), PanTo(position=position), SetZoom(level=place.zoom_level), PlaceMarker(position=position)]


class TestPanelController:

    def test_starts_idle(self):
        panels = PanelController()

        assert panels.selected_place is None
        assert panels.active_panel == ActivePanel.NONE

    def test_select_opens_info(self, place):
        panels = PanelController()
        panels.select_place(place)

        assert panels.selected_place is place
        assert panels.active_panel == ActivePanel.INFO

    @pytest.mark.parametrize(
        "sequence",
        list(itertools.product([ActivePanel.INFO, ActivePanel.VISUAL], repeat=4)),
    )
    def test_panels_are_exclusive(self, place, sequence):
        panels = PanelController()
        panels.select_place(place)
        expected = ActivePanel.INFO

        for which in sequence:
            expected = ActivePanel.NONE if expected == which else which
            assert panels.toggle_panel(which) == expected
            assert panels.active_panel in (ActivePanel.NONE, ActivePanel.INFO, ActivePanel.VISUAL)

    @pytest.mark.parametrize("panel", [ActivePanel.NONE, ActivePanel.INFO, ActivePanel.VISUAL])
    def test_close_from_any_state(self, place, panel):
        panels = PanelController()
        panels.select_place(place)
        panels.active_panel = panel

        panels.close()

        assert (panels.selected_place, panels.active_panel) == (None, ActivePanel.NONE)


class TestDiscovery:

    def test_successful_discovery(self, place):
        session = ExplorerSession()
        epoch = session.begin_discovery("ancient")
        assert session.is_discovering

        assert session.resolve_discovery(epoch, Result.ok(place))

        assert session.selected_place is place
        assert session.active_panel == ActivePanel.INFO
        assert not session.is_discovering

    def test_most_recent_request_wins(self, place, area_place):
        session = ExplorerSession()
        first = session.begin_discovery("ancient")
        second = session.begin_discovery("nature")

        assert session.resolve_discovery(second, Result.ok(area_place))
        assert not session.resolve_discovery(first, Result.ok(place))

        assert session.selected_place is area_place

    def test_late_map_commands_are_ignored(self, place):
        session = ExplorerSession()
        first = session.begin_discovery("ancient")
        session.begin_discovery("nature")

        assert not session.resolve_map(first, Result.ok(point_commands(place)))
        assert session.map_widget.marker is None

    def test_failure_resets_to_idle(self):
        session = ExplorerSession()
        epoch = session.begin_discovery("ancient")

        session.resolve_discovery(epoch, Result.fail(ErrorKind.GENERATION, "quota exceeded"))

        assert session.selected_place is None
        assert session.active_panel == ActivePanel.NONE
        assert session.discovery_error == f"{DISCOVERY_FAILED_PREFIX} quota exceeded"
        session.dismiss_error()
        assert session.discovery_error is None

    def test_new_discovery_discards_old_place(self, place):
        session = ExplorerSession()
        session.resolve_discovery(session.begin_discovery("ancient"), Result.ok(place))

        session.begin_discovery("time")

        assert session.selected_place is None
        assert session.story.slides == ()


    def test_new_discovery_clears_previous_marker(self, place):
        session = ExplorerSession()
        epoch = session.begin_discovery("ancient")
        session.resolve_discovery(epoch, Result.ok(place))
        session.resolve_map(epoch, Result.ok(point_commands(place)))
        assert session.map_widget.marker is not None

        session.begin_discovery("time")

        assert session.map_widget.marker is None

    def test_failed_map_view_shows_place_coordinates(self, place, area_place):
        session = ExplorerSession()
        epoch = session.begin_discovery("ancient")
        session.resolve_discovery(epoch, Result.ok(place))
        session.resolve_map(epoch, Result.ok(point_commands(place)))

        epoch = session.begin_discovery("nature")
        session.resolve_discovery(epoch, Result.ok(area_place))
        assert session.resolve_map(epoch, Result.fail(ErrorKind.TRANSPORT, "Request timed out."))

        position = LatLng(lat=area_place.latitude, lng=area_place.longitude)
        assert session.map_widget.center == position
        assert session.map_widget.marker == position
        assert session.map_widget.zoom == 12

    def test_failed_map_view_for_point_uses_its_zoom(self, place):
        session = ExplorerSession()
        epoch = session.begin_discovery("ancient")
        session.resolve_discovery(epoch, Result.ok(place))

        session.resolve_map(epoch, Result.fail(ErrorKind.GENERATION, "upstream down"))

        assert session.map_widget.zoom == place.zoom_level
        assert session.map_widget.marker == LatLng(lat=place.latitude, lng=place.longitude)

class TestVisualStory:

    def open_visuals(self, place):
        session = ExplorerSession()
        session.resolve_discovery(session.begin_discovery("ancient"), Result.ok(place))
        session.toggle_panel(ActivePanel.VISUAL)
        return session

    def test_needs_story_only_when_visuals_open(self, place):
        session = ExplorerSession()
        session.resolve_discovery(session.begin_discovery("ancient"), Result.ok(place))
        assert not session.needs_story

        session.toggle_panel(ActivePanel.VISUAL)
        assert session.needs_story

    def test_loading_flag_tracks_slide_fetch(self, place, slide_factory):
        session = self.open_visuals(place)
        epoch = session.begin_story()

        assert session.story.is_loading
        assert not session.needs_story

        pending = make_story(3, slide_factory)
        pending = Story(
            place_name=pending.place_name,
            slides=[StorySlide(slide=s.slide) for s in pending.slides],
        )
        session.resolve_story(epoch, Result.ok(pending))

        assert not session.story.is_loading
        assert session.story.current.image.status == ImageStatus.LOADING

    def test_empty_story_is_no_content_not_error(self, place):
        session = self.open_visuals(place)
        epoch = session.begin_story()

        session.resolve_story(epoch, Result.ok(Story(place_name="Hegra")))

        assert session.story.has_no_content
        assert session.story.error is None

    def test_story_failure(self, place):
        session = self.open_visuals(place)
        epoch = session.begin_story()

        session.resolve_story(epoch, Result.fail(ErrorKind.GENERATION, "bad slides"))

        assert session.story.error == "bad slides"
        assert not session.story.has_no_content

    @pytest.mark.parametrize("length", [1, 3, 5])
    def test_slide_index_wraps(self, place, slide_factory, length):
        session = self.open_visuals(place)
        epoch = session.begin_story()
        session.resolve_story(epoch, Result.ok(make_story(length, slide_factory)))

        assert session.previous_slide() == length - 1
        assert session.next_slide() == 0

        for _ in range(length - 1):
            session.next_slide()
        assert session.story.current_index == length - 1
        assert session.next_slide() == 0

    def test_navigation_without_slides(self):
        session = ExplorerSession()

        assert session.next_slide() == 0
        assert session.previous_slide() == 0



class TestSlideImages:

    IMAGE = ImagePayload(mime_type="image/png", data="aGVncmE=")

    def loaded_session(self, place, prompts):
        session = ExplorerSession()
        session.resolve_discovery(session.begin_discovery("ancient"), Result.ok(place))
        session.toggle_panel(ActivePanel.VISUAL)
        epoch = session.begin_story()
        session.resolve_story(epoch, Result.ok(pending_story(prompts)))
        return session, epoch

    def test_story_arrives_with_images_pending(self, place):
        session, _ = self.loaded_session(place, ["a", "b", "c"])

        assert not session.story.is_loading
        assert [s.image.status for s in session.story.slides] == [ImageStatus.LOADING] * 3
        assert session.next_pending_image() == (0, "a")

    def test_each_image_lands_in_its_own_slide(self, place):
        session, epoch = self.loaded_session(place, ["a", "b", "c"])

        assert session.resolve_slide_image(epoch, 1, Result.ok(self.IMAGE))
        assert session.resolve_slide_image(epoch, 2, Result.fail(ErrorKind.RENDER, "no image"))

        statuses = [s.image.status for s in session.story.slides]
        assert statuses == [ImageStatus.LOADING, ImageStatus.LOADED, ImageStatus.ERROR]
        assert session.story.slides[1].image.image == self.IMAGE
        assert session.story.slides[2].image.error == IMAGE_FAILED_MESSAGE
        assert session.cached_image("b") == self.IMAGE
        assert session.cached_image("c") is None

    def test_shown_slide_is_fetched_first(self, place):
        session, epoch = self.loaded_session(place, ["a", "b", "c"])
        session.next_slide()
        session.next_slide()

        assert session.next_pending_image() == (2, "c")
        session.resolve_slide_image(epoch, 2, Result.ok(self.IMAGE))
        assert session.next_pending_image() == (0, "a")

    def test_nothing_pending_once_resolved(self, place):
        session, epoch = self.loaded_session(place, ["a"])

        session.resolve_slide_image(epoch, 0, Result.ok(self.IMAGE))

        assert session.next_pending_image() is None

    def test_late_image_after_close_is_dropped(self, place):
        session, epoch = self.loaded_session(place, ["a", "b"])

        session.close()

        assert not session.resolve_slide_image(epoch, 0, Result.ok(self.IMAGE))
        assert session.image_cache == {}

    def test_new_story_clears_image_cache(self, place):
        session, epoch = self.loaded_session(place, ["a"])
        session.resolve_slide_image(epoch, 0, Result.ok(self.IMAGE))

        session.resolve_discovery(session.begin_discovery("time"), Result.ok(place))
        session.toggle_panel(ActivePanel.VISUAL)
        session.begin_story()

        assert session.cached_image("a") is None

class TestClose:

    def test_close_cascades(self, place, slide_factory):
        session = ExplorerSession()
        epoch = session.begin_discovery("ancient")
        session.resolve_discovery(epoch, Result.ok(place))
        session.resolve_map(epoch, Result.ok(point_commands(place)))
        session.toggle_panel(ActivePanel.VISUAL)
        story_epoch = session.begin_story()

        session.close()

        assert (session.selected_place, session.active_panel) == (None, ActivePanel.NONE)
        assert session.map_widget.marker is None
        assert session.story.slides == ()
        # A story that arrives after closing must not reappear
        assert not session.resolve_story(story_epoch, Result.ok(make_story(2, slide_factory)))
        assert session.story.slides == ()

    def test_close_keeps_camera_and_map_type(self, place):
        session = ExplorerSession()
        epoch = session.begin_discovery("ancient")
        session.resolve_discovery(epoch, Result.ok(place))
        session.resolve_map(epoch, Result.ok(point_commands(place)))
        session.toggle_map_type()
        center, zoom = session.map_widget.center, session.map_widget.zoom

        session.close()

        assert session.map_widget.map_type == MapType.ROADMAP
        assert (session.map_widget.center, session.map_widget.zoom) == (center, zoom)
