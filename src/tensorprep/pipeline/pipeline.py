"""
Tensor Pipeline

A TensorPipeline is an immutable, ordered sequence of TransformOps. It
runs them in order, infers the final shape without touching data, and
composes with other pipelines and operations.

Classes:
    TensorPipeline: Linear operation sequence
"""

import logging
import time
from concurrent.futures import Executor
from typing import Iterable, Optional, Sequence, Tuple

from tensorprep.core.view import TensorView
from tensorprep.exceptions import EmptyPipelineError, TensorError
from tensorprep.logger import pipeline_var
from tensorprep.ops.base import TransformOp
from tensorprep.pipeline.dispatch import dispatch

logger = logging.getLogger(__name__)


class TensorPipeline:
    """
    Ordered sequence of transform operations.

    Composition methods return new pipelines; the original is unchanged.

    Args:
        operations: Operations applied in order (at least one)
        name: Optional display name

    Raises:
        EmptyPipelineError: If ``operations`` is empty

    Example:
        >>> pipeline = TensorPipeline([ResizeOp(224, 224), UnsqueezeOp(0)], name="demo")
        >>> pipeline.compute_output_shape((3, 480, 640))
        (1, 3, 224, 224)
        >>> str(pipeline)
        'Pipeline(demo): Resize(224x224, bilinear) -> Unsqueeze(dim=0)'
    """

    def __init__(self, operations: Iterable[TransformOp], name: Optional[str] = None) -> None:
        self._operations: Tuple[TransformOp, ...] = tuple(operations)
        if not self._operations:
            raise EmptyPipelineError()
        self.name = name

    @property
    def operations(self) -> Tuple[TransformOp, ...]:
        return self._operations

    @property
    def display_name(self) -> str:
        return self.name or "pipeline"

    def __len__(self) -> int:
        return len(self._operations)

    # =========================================================================
    # Execution
    # =========================================================================

    def run(self, view: TensorView) -> TensorView:
        """
        Apply every operation in order.

        Raises:
            TensorError: The first error raised by an operation
        """
        token = pipeline_var.set(self.display_name)
        try:
            t0 = time.perf_counter()
            result = view
            for op in self._operations:
                t_op = time.perf_counter()
                result = op.apply(result)
                logger.debug(
                    f"{op.name} -> {list(result.shape)}",
                    extra={
                        "operation": op.name,
                        "latency_ms": (time.perf_counter() - t_op) * 1000,
                        "shape": result.shape,
                        "dtype": str(result.dtype),
                    },
                )

            latency_ms = (time.perf_counter() - t0) * 1000
            logger.info(
                f"Pipeline {self.display_name} finished in {latency_ms:.2f}ms",
                extra={"latency_ms": latency_ms, "shape": result.shape},
            )
            return result
        finally:
            pipeline_var.reset(token)

    def __call__(self, view: TensorView) -> TensorView:
        return self.run(view)

    async def run_async(
        self,
        view: TensorView,
        executor: Optional[Executor] = None,
        timeout: Optional[float] = None,
    ) -> TensorView:
        """
        Run the pipeline in a worker and await the result.

        The input is serialized, every operation runs inside a single worker,
        and the result is deserialized into a tensor with its own storage.

        Args:
            view: Input tensor
            executor: Executor to use (defaults to the shared process pool)
            timeout: Seconds to wait. ``None`` uses ``DISPATCH_TIMEOUT_SECONDS``,
                which waits without limit only when that setting is ``None``

        Raises:
            DispatchTimeoutError: If the worker does not finish in time
        """
        return await dispatch(self._operations, view, self.display_name, executor, timeout)

    # =========================================================================
    # Shape Inference
    # =========================================================================

    def compute_output_shape(self, shape: Sequence[int]) -> Tuple[int, ...]:
        """Fold every operation's shape inference over ``shape``."""
        result = tuple(shape)
        for op in self._operations:
            result = op.compute_output_shape(result)
        return result

    def validate(self, shape: Sequence[int]) -> bool:
        """Whether ``shape`` is accepted by every operation in turn."""
        try:
            self.compute_output_shape(shape)
        except TensorError as e:
            logger.debug(f"Pipeline {self.display_name} rejects {list(shape)}: {e}")
            return False
        return True

    # =========================================================================
    # Composition
    # =========================================================================

    def append(self, op: TransformOp) -> "TensorPipeline":
        return TensorPipeline((*self._operations, op), name=self.name)

    def prepend(self, op: TransformOp) -> "TensorPipeline":
        return TensorPipeline((op, *self._operations), name=self.name)

    def concat(self, other: "TensorPipeline") -> "TensorPipeline":
        """Unnamed pipeline running this one, then ``other``."""
        return TensorPipeline((*self._operations, *other._operations))

    def __add__(self, other: "TensorPipeline") -> "TensorPipeline":
        if not isinstance(other, TensorPipeline):
            return NotImplemented
        return self.concat(other)

    def __rshift__(self, op: TransformOp) -> "TensorPipeline":
        if not isinstance(op, TransformOp):
            return NotImplemented
        return self.append(op)

    def __str__(self) -> str:
        names = " -> ".join(op.name for op in self._operations)
        return f"Pipeline({self.name}): {names}" if self.name else f"Pipeline: {names}"

    def __repr__(self) -> str:
        return f"TensorPipeline(name={self.name!r}, operations={len(self)})"
