"""
Worker Dispatch

Runs a whole pipeline inside one worker of a ``concurrent.futures``
executor. Only a SerializedTensor (raw little-endian bytes, shape, ONNX
type code and layout hint) crosses the boundary in each direction; no
storage is shared between the caller and the worker.

Functions:
    serialize_tensor: Flatten a TensorView into a SerializedTensor
    deserialize_tensor: Rebuild a TensorView with its own storage
    run_serialized: Worker entry point
    dispatch: Await one pipeline run in an executor, with timeout
    get_executor: Shared process pool sized by settings
    shutdown_executor: Stop the shared process pool

Classes:
    SerializedTensor: Boundary record
"""

import asyncio
import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from tensorprep.core.dtype import ScalarType
from tensorprep.core.layout import MemoryLayout
from tensorprep.core.view import TensorView, numel_of
from tensorprep.exceptions import DispatchTimeoutError, InvalidParameterError, SizeMismatchError
from tensorprep.ops.base import TransformOp
from tensorprep.settings import get_settings

logger = logging.getLogger(__name__)

_executor: Optional[ProcessPoolExecutor] = None


# =============================================================================
# Serialization Boundary
# =============================================================================

@dataclass(frozen=True)
class SerializedTensor:
    """
    Tensor flattened for transfer to or from a worker.

    Attributes:
        data: Row-major element bytes, little-endian
        shape: Tensor dimensions
        dtype_code: ONNX TensorProto.DataType of the elements
        layout: Layout hint name ("NCHW" or "NHWC")
    """

    data: bytes
    shape: Tuple[int, ...]
    dtype_code: int
    layout: str = MemoryLayout.CONTIGUOUS.layout_name


def serialize_tensor(view: TensorView) -> SerializedTensor:
    """
    Serialize ``view`` (materialised first if not contiguous).

    Example:
        >>> record = serialize_tensor(TensorView.ones((2, 2), ScalarType.UINT8))
        >>> record.data, record.shape, record.dtype_code
        (b'\\x01\\x01\\x01\\x01', (2, 2), 2)
    """
    contiguous = view.contiguous()
    little_endian = contiguous.dtype.numpy_dtype.newbyteorder("<")
    data = contiguous.data.astype(little_endian, copy=False).tobytes()
    return SerializedTensor(data, tuple(contiguous.shape), contiguous.dtype.onnx_code, view.layout.layout_name)


def deserialize_tensor(record: SerializedTensor) -> TensorView:
    """
    Rebuild a contiguous TensorView that owns a fresh storage.

    The layout hint is restored as recorded; strides are always row-major.

    Raises:
        InvalidParameterError: If ``dtype_code`` or ``layout`` is not supported
        SizeMismatchError: If the byte count does not match shape and type
    """
    dtype = ScalarType.from_onnx_code(record.dtype_code)
    try:
        layout = MemoryLayout(record.layout)
    except ValueError:
        raise InvalidParameterError("layout", record.layout, "Expected NCHW or NHWC") from None

    expected = numel_of(record.shape) * dtype.width
    if len(record.data) != expected:
        raise SizeMismatchError(
            actual=(len(record.data),),
            expected=(expected,),
            message=f"Serialized data has {len(record.data)} bytes, expected {expected} for shape {list(record.shape)} ({dtype})",
        )

    raw = np.frombuffer(record.data, dtype=dtype.numpy_dtype.newbyteorder("<"))
    view = TensorView.from_buffer(raw.astype(dtype.numpy_dtype), dtype, record.shape)
    if layout is MemoryLayout.CONTIGUOUS:
        return view
    return TensorView(view.storage, view.shape, view.strides, layout=layout)


def run_serialized(operations: Sequence[TransformOp], record: SerializedTensor) -> SerializedTensor:
    """Worker entry point: deserialize, apply every operation, serialize."""
    result = deserialize_tensor(record)
    for op in operations:
        result = op.apply(result)
    return serialize_tensor(result)


# =============================================================================
# Executor Management
# =============================================================================

def get_executor() -> ProcessPoolExecutor:
    """Shared process pool, created on first use with ``DISPATCH_WORKERS`` workers."""
    global _executor
    if _executor is None:
        workers = get_settings().DISPATCH_WORKERS
        _executor = ProcessPoolExecutor(max_workers=workers)
        logger.info(f"Started dispatch process pool with {workers} workers")
    return _executor


def shutdown_executor() -> None:
    """Shut down the shared process pool if it was started."""
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=True)
        _executor = None
        logger.info("Dispatch process pool shut down")


# =============================================================================
# Dispatch
# =============================================================================

async def dispatch(
    operations: Sequence[TransformOp],
    view: TensorView,
    pipeline_name: str,
    executor: Optional[Executor] = None,
    timeout: Optional[float] = None,
) -> TensorView:
    """
    Run ``operations`` on ``view`` in a worker and await the result.

    Args:
        operations: Operations applied in order inside the worker
        view: Input tensor (serialized, never shared)
        pipeline_name: Name used in logs and timeout errors
        executor: Executor to use (defaults to the shared process pool)
        timeout: Seconds to wait. ``None`` uses ``DISPATCH_TIMEOUT_SECONDS``,
            which waits without limit only when that setting is ``None``

    Returns:
        Result tensor with its own storage

    Raises:
        DispatchTimeoutError: If the worker does not finish within ``timeout``
        TensorError: Any error raised by an operation inside the worker
    """
    if timeout is None:
        timeout = get_settings().DISPATCH_TIMEOUT_SECONDS
    pool = executor if executor is not None else get_executor()

    record = serialize_tensor(view)
    loop = asyncio.get_running_loop()

    t0 = time.perf_counter()
    logger.debug(
        f"Dispatching {pipeline_name} to worker",
        extra={"pipeline": pipeline_name, "shape": record.shape},
    )
    future = loop.run_in_executor(pool, run_serialized, tuple(operations), record)

    try:
        result = await asyncio.wait_for(future, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(
            f"Dispatch of {pipeline_name} timed out after {timeout}s",
            extra={"pipeline": pipeline_name},
        )
        raise DispatchTimeoutError(pipeline_name, timeout) from None

    latency_ms = (time.perf_counter() - t0) * 1000
    logger.debug(
        f"Worker finished {pipeline_name} in {latency_ms:.2f}ms",
        extra={"pipeline": pipeline_name, "latency_ms": latency_ms},
    )
    return deserialize_tensor(result)
