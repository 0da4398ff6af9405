"""
Pipeline checkpoints.

The orchestrator and the compositor report progress to a PipelineObserver
instead of carrying debug branches inline. Observers never affect the
output: a failing observer is logged and ignored.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from PIL import Image
from loguru import logger


class PipelineObserver:
    """No-op base; override the checkpoints you care about."""

    def slots_resolved(self, run_id: str, slot_layout) -> None:
        pass

    def photo_adjusted(self, run_id: str, index: int, photo_id: str, image: Image.Image) -> None:
        pass

    def base_ready(self, run_id: str, image: Image.Image) -> None:
        pass

    def photos_composited(self, run_id: str, image: Image.Image) -> None:
        pass

    def final_ready(self, run_id: str, image: Image.Image) -> None:
        pass

    def written(self, run_id: str, path: str) -> None:
        pass

    def artifacts(self, run_id: str) -> Dict[str, Image.Image]:
        """Images worth keeping beyond the run, by name."""
        return {}

    def finished(self, run_id: str) -> None:
        """Called once per run, success or failure; drop anything held for it."""
        pass


class ObserverGroup(PipelineObserver):
    """Fans each checkpoint out to several observers."""

    def __init__(self, observers: Sequence[PipelineObserver] = ()):
        self.observers: List[PipelineObserver] = list(observers)

    def _notify(self, checkpoint: str, *args) -> None:
        for observer in self.observers:
            try:
                getattr(observer, checkpoint)(*args)
            except Exception:
                logger.opt(exception=True).warning(
                    f"Observer {type(observer).__name__} failed at checkpoint '{checkpoint}'"
                )

    def slots_resolved(self, run_id, slot_layout):
        self._notify("slots_resolved", run_id, slot_layout)

    def photo_adjusted(self, run_id, index, photo_id, image):
        self._notify("photo_adjusted", run_id, index, photo_id, image)

    def base_ready(self, run_id, image):
        self._notify("base_ready", run_id, image)

    def photos_composited(self, run_id, image):
        self._notify("photos_composited", run_id, image)

    def final_ready(self, run_id, image):
        self._notify("final_ready", run_id, image)

    def written(self, run_id, path):
        self._notify("written", run_id, path)

    def finished(self, run_id):
        self._notify("finished", run_id)

    def artifacts(self, run_id):
        merged: Dict[str, Image.Image] = {}
        for observer in self.observers:
            try:
                merged.update(observer.artifacts(run_id))
            except Exception:
                logger.opt(exception=True).warning(f"Observer {type(observer).__name__} failed to report artifacts")
        return merged


class LoggingObserver(PipelineObserver):

    def slots_resolved(self, run_id, slot_layout):
        logger.debug(
            f"[{run_id}] {len(slot_layout.slots)} slot(s) from {slot_layout.source} "
            f"({slot_layout.layout.value}): "
            + ", ".join(f"{s.width}x{s.height}@{s.x},{s.y}" for s in slot_layout.slots)
        )

    def photo_adjusted(self, run_id, index, photo_id, image):
        logger.debug(f"[{run_id}] photo {index + 1} ({photo_id}) adjusted to {image.size[0]}x{image.size[1]}")

    def base_ready(self, run_id, image):
        logger.debug(f"[{run_id}] base canvas {image.size[0]}x{image.size[1]} mode={image.mode}")

    def final_ready(self, run_id, image):
        logger.debug(f"[{run_id}] final image {image.size[0]}x{image.size[1]} mode={image.mode}")

    def written(self, run_id, path):
        logger.debug(f"[{run_id}] written to {path}")


def _safe_name(run_id: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", run_id)


class InspectionObserver(PipelineObserver):
    """Dumps intermediate images to disk and logs the centre pixel of each.

    The photos-only composite is also kept in memory until the run finishes so
    the orchestrator can store it next to the photostrip.
    """

    def __init__(self, dump_dir: str):
        self.dump_dir = Path(dump_dir)
        self._artifacts: Dict[str, Dict[str, Image.Image]] = {}

    def _dump(self, run_id: str, name: str, image: Image.Image) -> str:
        run_dir = self.dump_dir / _safe_name(run_id)
        run_dir.mkdir(parents=True, exist_ok=True)
        path = run_dir / f"{name}.png"
        image.save(path, format="PNG")

        center = image.getpixel((image.width // 2, image.height // 2))
        if not isinstance(center, tuple):
            center = (center,)
        logger.debug(f"[{run_id}] {name}: centre pixel {center} -> {path}")
        return str(path)

    def photo_adjusted(self, run_id, index, photo_id, image):
        self._dump(run_id, f"photo-{index + 1:02d}", image)

    def base_ready(self, run_id, image):
        self._dump(run_id, "base", image)

    def photos_composited(self, run_id, image):
        self._dump(run_id, "photos-only", image)
        # the canvas keeps changing after this checkpoint
        self._artifacts.setdefault(run_id, {})["photos_only"] = image.copy()

    def final_ready(self, run_id, image):
        self._dump(run_id, "final", image)

    def artifacts(self, run_id):
        return dict(self._artifacts.get(run_id, {}))

    def finished(self, run_id):
        self._artifacts.pop(run_id, None)


def build_observer(dump_dir: Optional[str] = None, extra: Sequence[PipelineObserver] = ()) -> ObserverGroup:
    observers: List[PipelineObserver] = [LoggingObserver()]
    if dump_dir:
        observers.append(InspectionObserver(dump_dir))
    observers.extend(extra)
    return ObserverGroup(observers)
