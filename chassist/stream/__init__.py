"""Assistant response-stream transformation pipeline.

Turns a multi-step, tool-augmented generation stream into cleaned client
frames and a transcript entry to persist.
"""

from chassist.stream.classifier import ClassifierState, PipelineState, StepBuffer, StepClassifier
from chassist.stream.correlator import ToolCorrelator, parse_tool_args
from chassist.stream.encoder import encode_frame, encode_sse
from chassist.stream.pipeline import AssistantStream
from chassist.stream.reducer import TranscriptReducer, TranscriptStore, TurnContext
from chassist.stream.scratchpad import SCRATCHPAD_END_MARKERS, strip_scratchpad
from chassist.stream.summarizer import serialize_numeric_safe, summarize_result

__all__ = [
    "AssistantStream",
    "ClassifierState",
    "PipelineState",
    "SCRATCHPAD_END_MARKERS",
    "StepBuffer",
    "StepClassifier",
    "ToolCorrelator",
    "TranscriptReducer",
    "TranscriptStore",
    "TurnContext",
    "encode_frame",
    "encode_sse",
    "parse_tool_args",
    "serialize_numeric_safe",
    "strip_scratchpad",
    "summarize_result",
]
