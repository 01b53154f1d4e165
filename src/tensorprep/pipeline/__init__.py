"""
Pipeline Module - Sequencing, Worker Dispatch and Presets

- pipeline: TensorPipeline, an immutable ordered sequence of operations
- dispatch: Serialized hand-off of a whole pipeline run to an executor
- presets: Named pipelines built from the presets.yaml catalog
"""

from tensorprep.pipeline.dispatch import (
    SerializedTensor,
    deserialize_tensor,
    serialize_tensor,
    shutdown_executor,
)
from tensorprep.pipeline.pipeline import TensorPipeline
from tensorprep.pipeline.presets import build_op, build_pipeline, custom, list_presets, load_preset

__all__ = [
    "TensorPipeline",
    # Dispatch boundary
    "SerializedTensor",
    "serialize_tensor",
    "deserialize_tensor",
    "shutdown_executor",
    # Presets
    "load_preset",
    "list_presets",
    "custom",
    "build_op",
    "build_pipeline",
]
