import pytest

from orrery.constants import DEFAULT_BODY_COLOR, DEFAULT_TEXTURE
from orrery.history import append_positions
from orrery.scaling import PlanarScale, SpatialScale
from orrery.scene import SceneModelBuilder, body_color, body_texture, build_scene

from conftest import T0, days, make_body, solar_snapshot


class TestBuildScene:
    def test_pure_projection(self):
        bodies = solar_snapshot()
        history = append_positions({}, bodies)
        transform = PlanarScale()
        assert build_scene(bodies, history, transform) == build_scene(bodies, history, transform)

    def test_trails_share_body_scale(self):
        bodies = solar_snapshot()
        history = append_positions({}, bodies)
        scene = build_scene(bodies, history, PlanarScale())
        assert scene.trails["Terre"][-1] == scene.body("Terre").position

    def test_scale_comes_from_latest_not_history(self):
        far = solar_snapshot(earth_x=9.0e12)
        near = solar_snapshot(timestamp=T0 + days(1))
        history = append_positions(append_positions({}, far), near)
        scene = build_scene(near, history, PlanarScale())
        assert scene.factors.reference_distance == pytest.approx(2.279e11)

    def test_primary_is_flagged_and_rendered(self):
        scene = build_scene(solar_snapshot(), {}, PlanarScale())
        sun = scene.body("Soleil")
        assert sun is not None and sun.is_primary
        assert not scene.body("Terre").is_primary

    def test_empty_scene(self):
        scene = build_scene([], {}, PlanarScale())
        assert scene.bodies == ()
        assert scene.to_2d_payload() == {"bodies": [], "trails": {}}


class TestPayloads:
    def test_2d_payload_shape(self):
        bodies = solar_snapshot()
        payload = build_scene(bodies, append_positions({}, bodies), PlanarScale()).to_2d_payload()
        terre = next(b for b in payload["bodies"] if b["name"] == "Terre")
        assert set(terre) == {"name", "position2D", "radius2D"}
        assert len(terre["position2D"]) == 2
        assert all(len(p) == 2 for p in payload["trails"]["Terre"])

    def test_3d_payload_shape(self):
        bodies = solar_snapshot()
        payload = build_scene(bodies, append_positions({}, bodies), SpatialScale()).to_3d_payload()
        mars = next(b for b in payload["bodies"] if b["name"] == "Mars")
        assert set(mars) == {"name", "position3D", "radius3D", "texture"}
        assert mars["position3D"] == pytest.approx([0.0, 227.9, 1.0])
        assert mars["texture"] == "2k_mars.jpg"


class TestLookups:
    def test_known_names(self):
        assert body_color("Terre") == (100, 149, 237)
        assert body_texture("Soleil") == "2k_sun.jpg"

    def test_unknown_names_fall_back(self):
        assert body_color("Pluton") == DEFAULT_BODY_COLOR
        assert body_texture("Pluton") == DEFAULT_TEXTURE


class TestSceneModelBuilder:
    def test_latest_cache_is_replaced_not_merged(self):
        builder = SceneModelBuilder()
        builder.update(solar_snapshot())
        builder.update([make_body("Terre")])
        assert [b.name for b in builder.latest()] == ["Terre"]

    def test_empty_batch_keeps_latest(self):
        builder = SceneModelBuilder()
        builder.update(solar_snapshot())
        assert builder.update([]) is False
        assert len(builder.latest()) == 3

    def test_range_batch_keeps_newest_state_per_body(self):
        builder = SceneModelBuilder()
        batch = solar_snapshot(T0) + solar_snapshot(T0 + days(1), earth_x=1.5e11)
        builder.update(batch)
        latest = {b.name: b for b in builder.latest()}
        assert len(latest) == 3
        assert latest["Terre"].position[0] == 1.5e11

    def test_builds_use_factors_of_last_batch(self):
        builder = SceneModelBuilder(PlanarScale(viewport=(1100, 800), padding=40))
        builder.update(solar_snapshot())
        scene = builder.build_2d({})
        assert scene.factors.position_scale == pytest.approx(360 / 2.279e11)

    def test_set_viewport_rescales(self):
        builder = SceneModelBuilder(PlanarScale(viewport=(1100, 800), padding=40))
        builder.update(solar_snapshot())
        builder.set_viewport(600, 600)
        assert builder.build_2d({}).factors.position_scale == pytest.approx(260 / 2.279e11)

    def test_reset(self):
        builder = SceneModelBuilder()
        builder.update(solar_snapshot())
        builder.reset()
        assert builder.latest() == ()
        assert builder.build_3d({}).bodies == ()

    def test_cards(self):
        builder = SceneModelBuilder()
        builder.update([make_body("Terre", radius=6.371e6, mass=5.97e24)])
        card = builder.cards()[0]
        assert card["name"] == "Terre"
        assert card["mass"] == "5.97e+24 kg"
        assert card["radius"] == "6,371 km"
