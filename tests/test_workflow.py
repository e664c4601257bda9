"""
Tests for the workflow controller.

Tests cover:
- Phase transitions and the decode readiness gate
- Single-flight submission
- Reset while a request is in flight
- Success and failure handling (timeout scenario with retry)
- Brush size and drag state
- Mask snapshot isolation
"""

import pytest
from PIL import Image
from io import BytesIO

from cleanpic_ui.core.encoding import parse_data_uri
from cleanpic_ui.core.errors import EmptyResult, GatewayTimeout, InvalidInput, NotReady, UpstreamError
from cleanpic_ui.core.session import Phase
from cleanpic_ui.core.workflow import WorkflowController

from conftest import FakeGateway, make_png


def _mask_image(uri):
    data, mime = parse_data_uri(uri)
    assert mime == "image/png"
    return Image.open(BytesIO(data))


class TestLoading:
    def test_starts_empty(self, controller):
        assert controller.phase is Phase.EMPTY
        assert controller.source is None
        assert controller.result is None

    def test_load_image_moves_to_loaded(self, controller, png_bytes):
        phases = []
        controller.phase_changed.connect(phases.append)
        token = controller.load_image(png_bytes, "image/png")
        assert isinstance(token, int)
        assert controller.phase is Phase.LOADED
        assert controller.source.data == png_bytes
        assert not controller.source.decoded
        assert phases == [Phase.LOADED]

    def test_rejects_non_image_mime(self, controller, png_bytes):
        with pytest.raises(InvalidInput):
            controller.load_image(png_bytes, "application/pdf")
        assert controller.phase is Phase.EMPTY

    def test_rejects_empty_payload(self, controller):
        with pytest.raises(InvalidInput):
            controller.load_image(b"", "image/png")

    def test_rejects_oversized_payload(self, gateway, runner):
        ctrl = WorkflowController(gateway, runner=runner, max_upload_bytes=10)
        with pytest.raises(InvalidInput):
            ctrl.load_image(make_png(), "image/png")

    def test_decode_completes_loading(self, controller, png_bytes):
        token = controller.load_image(png_bytes, "image/png")
        assert controller.image_decoded(token, 800, 600)
        assert controller.phase is Phase.EDITING
        assert controller.source.size == (800, 600)

    def test_stale_decode_token_ignored(self, controller, png_bytes):
        old = controller.load_image(png_bytes, "image/png")
        controller.reset()
        new = controller.load_image(make_png(10, 10), "image/png")
        assert not controller.image_decoded(old, 800, 600)
        assert controller.phase is Phase.LOADED
        assert controller.image_decoded(new, 10, 10)
        assert controller.source.size == (10, 10)

    def test_decode_failure_returns_to_empty(self, controller, png_bytes):
        errors = []
        controller.failed.connect(errors.append)
        token = controller.load_image(png_bytes, "image/png")
        assert controller.decode_failed(token, InvalidInput("Could not decode image", "truncated"))
        assert controller.phase is Phase.EMPTY
        assert controller.source is None
        assert errors[0].kind == "invalid_input"

    def test_load_not_allowed_while_editing(self, editing, png_bytes):
        with pytest.raises(NotReady):
            editing.load_image(png_bytes, "image/png")

    def test_load_after_result_clears_previous_session(self, editing, runner, png_bytes):
        editing.paint_stroke([(1, 1), (5, 5)])
        editing.submit()
        runner.run()
        assert editing.phase is Phase.SUCCEEDED
        editing.load_image(png_bytes, "image/jpeg")
        assert editing.phase is Phase.LOADED
        assert editing.result is None
        assert len(editing.mask) == 0
        assert not editing.mask.mounted


class TestReadinessGate:
    def test_submit_before_decode_is_rejected(self, controller, runner, gateway, png_bytes):
        controller.load_image(png_bytes, "image/png")
        with pytest.raises(NotReady):
            controller.submit()
        assert runner.pending == 0
        assert gateway.calls == []
        assert controller.phase is Phase.LOADED

    def test_paint_before_decode_is_rejected(self, controller, png_bytes):
        controller.load_image(png_bytes, "image/png")
        with pytest.raises(NotReady):
            controller.paint_stroke([(1, 1)])

    def test_mount_before_decode_is_rejected(self, controller, png_bytes):
        controller.load_image(png_bytes, "image/png")
        with pytest.raises(NotReady):
            controller.mount_surface(400, 300)

    def test_paint_is_noop_until_surface_mounted(self, controller, png_bytes):
        token = controller.load_image(png_bytes, "image/png")
        controller.image_decoded(token, 800, 600)
        assert controller.paint_stroke([(1, 1)]) is None
        assert len(controller.mask) == 0

    def test_submit_before_mount_is_rejected(self, controller, png_bytes):
        token = controller.load_image(png_bytes, "image/png")
        controller.image_decoded(token, 800, 600)
        with pytest.raises(NotReady):
            controller.submit()

    def test_mount_keeps_first_size(self, editing):
        editing.mount_surface(100, 100)
        assert editing.mask.canvas_size == (800, 600)


class TestPainting:
    def test_paint_and_undo(self, editing):
        changes = []
        editing.mask_changed.connect(lambda: changes.append(True))
        stroke = editing.paint_stroke([(10, 10), (20, 20)])
        assert stroke.width == editing.brush_size
        assert len(editing.mask) == 1
        assert editing.undo() is True
        assert len(editing.mask) == 0
        assert len(changes) == 2

    def test_undo_on_empty_mask_is_idempotent(self, editing):
        assert editing.undo() is False
        assert editing.undo() is False
        assert len(editing.mask) == 0

    def test_undo_outside_editing_raises(self, controller):
        with pytest.raises(NotReady):
            controller.undo()

    def test_clear_mask(self, editing):
        editing.paint_stroke([(1, 1)])
        editing.paint_stroke([(2, 2)], erase=True)
        editing.clear_mask()
        assert len(editing.mask) == 0

    def test_brush_size_is_clamped(self, controller):
        sizes = []
        controller.brush_size_changed.connect(sizes.append)
        assert controller.set_brush_size(1) == 5
        assert controller.set_brush_size(500) == 50
        assert controller.set_brush_size(20) == 20
        assert sizes == [5, 50, 20]

    def test_drag_state(self, controller):
        seen = []
        controller.drag_changed.connect(seen.append)
        controller.set_drag_active(True)
        controller.set_drag_active(True)
        controller.set_drag_active(False)
        assert seen == [True, False]


class TestSubmission:
    def test_end_to_end_success(self, controller, runner, png_bytes):
        # 800x600 upload -> one stroke -> gateway answers {data: [url]}
        from cleanpic_ui.core.gateway import parse_prediction

        class DataGateway(FakeGateway):
            def submit(self, image, mask):
                self.calls.append((image, mask))
                return parse_prediction({"data": ["https://host/out.png"]})

        gw = DataGateway()
        ctrl = WorkflowController(gw, runner=runner)
        results = []
        ctrl.result_ready.connect(results.append)

        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(800, 600)
        ctrl.paint_stroke([(100, 100), (300, 120)], width=20)
        ctrl.submit()
        assert ctrl.phase is Phase.SUBMITTING
        runner.run()

        assert ctrl.phase is Phase.SUCCEEDED
        assert ctrl.result.ref == "https://host/out.png"
        assert results[0].ref == "https://host/out.png"
        image_uri, mask_uri = gw.calls[0]
        assert parse_data_uri(image_uri)[0] == png_bytes
        mask = _mask_image(mask_uri)
        assert mask.size == (800, 600)
        assert mask.getpixel((200, 110))[3] == 255

    def test_single_flight(self, editing, runner, gateway):
        editing.submit()
        with pytest.raises(NotReady):
            editing.submit()
        assert runner.pending == 1
        runner.run_all()
        assert len(gateway.calls) == 1
        assert editing.phase is Phase.SUCCEEDED

    def test_painting_blocked_while_submitting(self, editing):
        editing.submit()
        with pytest.raises(NotReady):
            editing.paint_stroke([(1, 1)])
        with pytest.raises(NotReady):
            editing.undo()

    def test_snapshot_ignores_later_strokes(self, editing, runner, gateway):
        editing.paint_stroke([(10, 10)], width=10)
        editing.submit()
        snapshot = editing.last_snapshot
        runner.run()
        editing.paint_stroke([(700, 500)], width=10)
        assert len(snapshot.strokes) == 1
        mask = _mask_image(gateway.calls[0][1])
        assert mask.getpixel((700, 500))[3] == 0
        assert mask.getpixel((10, 10))[3] == 255

    def test_timeout_keeps_session_and_allows_retry(self, runner, png_bytes):
        gw = FakeGateway(GatewayTimeout("The model did not respond in time", "exceeded 60s"), "https://host/out.png")
        ctrl = WorkflowController(gw, runner=runner)
        failures = []
        ctrl.failed.connect(failures.append)
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(800, 600)
        ctrl.paint_stroke([(1, 1), (50, 50)])
        source, strokes = ctrl.source, ctrl.mask.strokes

        ctrl.submit()
        runner.run()
        assert ctrl.phase is Phase.FAILED
        assert ctrl.error.kind == "timeout"
        assert failures[0].message == "The model did not respond in time"
        assert ctrl.source is source
        assert ctrl.mask.strokes == strokes

        ctrl.submit()
        runner.run()
        assert ctrl.phase is Phase.SUCCEEDED
        assert ctrl.error is None
        assert len(gw.calls) == 2

    def test_failure_keeps_previous_result(self, runner, png_bytes):
        gw = FakeGateway("https://host/first.png", EmptyResult("The model did not return a valid image"))
        ctrl = WorkflowController(gw, runner=runner)
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(800, 600)
        ctrl.submit()
        runner.run()
        ctrl.submit()
        runner.run()
        assert ctrl.phase is Phase.FAILED
        assert ctrl.error.kind == "empty_result"
        assert ctrl.result.ref == "https://host/first.png"

    def test_unexpected_task_error_fails_request(self, runner, png_bytes):
        ctrl = WorkflowController(FakeGateway(RuntimeError("boom")), runner=runner)
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(800, 600)
        request = ctrl.submit()
        assert runner.tags == [request]
        runner.run()
        assert ctrl.phase is Phase.FAILED
        assert ctrl.error.kind == "upstream"
        assert ctrl.error.detail == "boom"
        assert not ctrl.in_flight

    def test_resume_editing(self, editing, runner):
        editing.submit()
        runner.run()
        editing.resume_editing()
        assert editing.phase is Phase.EDITING
        assert editing.result is not None

    def test_stroke_after_result_resumes_editing(self, editing, runner):
        editing.submit()
        runner.run()
        editing.paint_stroke([(3, 3)])
        assert editing.phase is Phase.EDITING


class TestReset:
    def test_reset_clears_everything(self, editing, runner):
        editing.paint_stroke([(1, 1)])
        editing.submit()
        runner.run()
        editing.reset()
        assert editing.phase is Phase.EMPTY
        assert editing.source is None
        assert editing.result is None
        assert len(editing.mask) == 0

    def test_reset_keeps_brush_size(self, editing):
        editing.set_brush_size(33)
        editing.reset()
        assert editing.brush_size == 33

    def test_reply_after_reset_is_discarded(self, runner, png_bytes):
        gw = FakeGateway(UpstreamError("Processing failed"), "https://host/new.png")
        ctrl = WorkflowController(gw, runner=runner)
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(800, 600)
        ctrl.submit()

        ctrl.reset()
        new_png = make_png(320, 200, (0, 0, 255))
        token = ctrl.load_image(new_png, "image/png")
        ctrl.image_decoded(token, 320, 200)

        runner.run()  # the old request resolves now
        assert ctrl.phase is Phase.EDITING
        assert ctrl.error is None
        assert ctrl.result is None
        assert ctrl.source.data == new_png

    def test_crash_of_superseded_request_is_discarded(self, runner, png_bytes):
        gw = FakeGateway(RuntimeError("old request blew up"), "https://host/new.png")
        ctrl = WorkflowController(gw, runner=runner)
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(800, 600)
        ctrl.submit()

        ctrl.reset()
        token = ctrl.load_image(make_png(320, 200), "image/png")
        ctrl.image_decoded(token, 320, 200)
        ctrl.mount_surface(320, 200)
        ctrl.submit()

        runner.run(0)  # the old task raises after the new request started
        assert ctrl.phase is Phase.SUBMITTING
        assert ctrl.error is None
        assert ctrl.in_flight

        runner.run(0)
        assert ctrl.phase is Phase.SUCCEEDED
        assert ctrl.result.ref == "https://host/new.png"

    def test_new_request_after_reset_is_applied(self, runner, png_bytes):
        gw = FakeGateway("https://host/old.png", "https://host/new.png")
        ctrl = WorkflowController(gw, runner=runner)
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(800, 600)
        ctrl.submit()
        ctrl.reset()
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(800, 600)
        ctrl.submit()

        runner.run(0)  # stale reply
        assert ctrl.phase is Phase.SUBMITTING
        runner.run(0)
        assert ctrl.phase is Phase.SUCCEEDED
        assert ctrl.result.ref == "https://host/new.png"


class TestMaskResolution:
    def test_native_resolution_export(self, gateway, runner, png_bytes):
        ctrl = WorkflowController(gateway, runner=runner, mask_resolution="native")
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(400, 300)
        ctrl.paint_stroke([(100, 100)], width=10)
        ctrl.submit()
        runner.run()
        mask = _mask_image(gateway.calls[0][1])
        assert mask.size == (800, 600)
        assert mask.getpixel((200, 200))[3] == 255

    def test_display_resolution_export(self, gateway, runner, png_bytes):
        ctrl = WorkflowController(gateway, runner=runner)
        token = ctrl.load_image(png_bytes, "image/png")
        ctrl.image_decoded(token, 800, 600)
        ctrl.mount_surface(400, 300)
        ctrl.submit()
        runner.run()
        assert _mask_image(gateway.calls[0][1]).size == (400, 300)

    def test_unknown_resolution_rejected(self, gateway):
        with pytest.raises(ValueError):
            WorkflowController(gateway, mask_resolution="retina")
