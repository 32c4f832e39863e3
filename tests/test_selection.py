from __future__ import annotations

from pymapview.buffers import FrontendBufferManager
from pymapview.models.selection import SelectedFeature, SelectionLayer
from pymapview.selection import SelectionManager, selection_id
from pymapview.surface import InMemoryMap

A = ("40.000000_-83.000000", {"site": "A"}, (40.0, -83.0), "Crown Castle Towers", "Crown Castle")
B = ("40.100000_-83.100000", {"site": "B"}, (40.1, -83.1), "SBA Towers", "SBA")


def _manager(visible: bool = True) -> tuple[SelectionManager, FrontendBufferManager, InMemoryMap]:
    buffers = FrontendBufferManager(radii_miles=(2, 5), circle_segments=8)
    manager = SelectionManager(buffers, visible=visible)
    map_handle = InMemoryMap()
    manager.initialize(map_handle)
    return manager, buffers, map_handle


def test_select_a_then_b_then_deselect_a_leaves_only_b() -> None:
    manager, buffers, _ = _manager()

    assert manager.toggle_feature(*A) is True
    assert manager.toggle_feature(*B) is True
    assert manager.toggle_feature(*A) is False

    assert [feature.id for feature in manager.get_selected_features()] == [B[0]]
    collection = manager.get_feature_collection()
    assert len(collection) == 1
    assert collection.features[0].geometry.coordinates == [-83.1, 40.1]
    assert collection.features[0].properties == {"site": "B", "selection_id": B[0]}
    assert [overlay.rendered_feature_count for overlay in buffers.get_buffers_for_parent(-1)] == [1, 1]


def test_toggle_is_its_own_inverse() -> None:
    manager, buffers, map_handle = _manager()
    manager.toggle_feature(*B)
    before_ids = [feature.id for feature in manager.get_selected_features()]
    before_rendered = manager.is_rendered()
    before_layers = map_handle.layer_names()

    manager.toggle_feature(*A)
    manager.toggle_feature(*A)

    assert [feature.id for feature in manager.get_selected_features()] == before_ids
    assert manager.is_rendered() == before_rendered
    assert map_handle.layer_names() == before_layers


def test_empty_selection_removes_layer_and_buffers() -> None:
    manager, buffers, map_handle = _manager()
    manager.toggle_feature(*A)
    buffers.toggle_buffer_layer("buffer_-1_2mi", True, map_handle)
    assert map_handle.layer_names() == ["Selected Features", "Selected Features (2 mi buffer)"]

    manager.toggle_feature(*A)

    assert map_handle.layers == []
    assert not buffers.has_buffers_for_layer(-1)
    assert manager.get_selection_layer().feature_count == 0


def test_selection_buffers_follow_membership_and_keep_user_flag() -> None:
    manager, buffers, map_handle = _manager()
    manager.toggle_feature(*A)
    buffers.toggle_buffer_layer("buffer_-1_5mi", True, map_handle)

    manager.toggle_feature(*B)

    overlay = buffers.get_buffer_layer("buffer_-1_5mi")
    assert overlay.is_enabled_by_user is True
    assert overlay.rendered_feature_count == 2
    assert overlay.color == "#FFD700"
    assert buffers.is_drawn("buffer_-1_5mi")


def test_hidden_selection_layer_is_not_attached() -> None:
    manager, buffers, map_handle = _manager(visible=False)

    manager.toggle_feature(*A)

    assert map_handle.layers == []
    assert manager.is_selected(A[0])
    assert manager.get_selection_layer().visible is False

    manager.set_layer_visible(True)
    assert map_handle.layer_names() == ["Selected Features"]
    assert len(manager.get_render_layer()) == 1


def test_hiding_detaches_buffers_before_layer() -> None:
    manager, buffers, map_handle = _manager()
    manager.toggle_feature(*A)
    buffers.toggle_buffer_layer("buffer_-1_2mi", True, map_handle)

    manager.set_layer_visible(False)

    assert map_handle.layers == []
    manager.set_layer_visible(True)
    assert map_handle.layer_names() == ["Selected Features", "Selected Features (2 mi buffer)"]


def test_without_map_membership_is_tracked_headlessly() -> None:
    buffers = FrontendBufferManager()
    manager = SelectionManager(buffers)

    assert manager.toggle_feature(*A) is True
    manager.set_layer_visible(False)
    manager.clear_all()
    manager.toggle_feature(*B)

    assert manager.is_selected(B[0])
    assert manager.is_rendered() is False
    assert buffers.get_stats().total_buffers == 0


def test_initialize_renders_selection_made_headlessly() -> None:
    buffers = FrontendBufferManager()
    manager = SelectionManager(buffers)
    manager.toggle_feature(*A)
    map_handle = InMemoryMap()

    manager.initialize(map_handle)

    assert manager.is_rendered()
    assert buffers.get_buffer_count_for_layer(-1) == 2


def test_notifications_on_change() -> None:
    manager, _, _ = _manager()
    selections: list[list[SelectedFeature]] = []
    layers: list[SelectionLayer] = []
    manager.on_selection_change(selections.append)
    unsubscribe = manager.on_layer_update(layers.append)

    manager.toggle_feature(*A)
    unsubscribe()
    manager.toggle_feature(*B)

    assert [len(selection) for selection in selections] == [1, 2]
    assert len(layers) == 1
    assert layers[0].id == -1
    assert layers[0].rendered is True
    assert layers[0].feature_count == 1


def test_clear_all_and_cleanup() -> None:
    manager, buffers, map_handle = _manager()
    manager.toggle_feature(*A)
    manager.toggle_feature(*B)

    manager.clear_all()
    assert map_handle.layers == []
    assert manager.get_selected_features() == []

    manager.toggle_feature(*A)
    manager.cleanup()
    manager.cleanup()
    assert map_handle.layers == []
    assert buffers.get_stats().total_buffers == 0
    assert manager.is_rendered() is False


def test_selection_id_is_stable_to_six_decimals() -> None:
    assert selection_id(40.0, -83.0) == "40.000000_-83.000000"
    assert selection_id(40.00000004, -83.0) == selection_id(40.0, -83.00000001)
