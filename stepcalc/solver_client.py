"""Remote problem solver.

Sends a word problem (or a photo of one) to an OpenAI-compatible chat model
and returns its free-text answer. The calculation engine never calls this;
the CLI may feed the transcribed problem back into ``evaluate_expression``.

Failures surface once as ServiceError. Requests are never retried.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

import openai
from openai import OpenAI

from .config import SolverConfig
from .errors import ServiceError


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a precise math calculator. Give accurate results and explain "
    "each calculation step. Accuracy comes first."
)

ANSWER_FORMAT = """Answer format (JSON):
{
  "problem": "the problem statement",
  "steps": ["step 1", "step 2", ...],
  "result": "final answer",
  "graph_data": "plot data if a graph is needed"
}"""

IMAGE_PROMPT = f"""Read the math problem in the image and solve it with a detailed derivation.

1. Transcribe the problem exactly
2. Show the calculation step by step
3. State the final answer clearly
4. Provide coordinate data if a graph is needed

{ANSWER_FORMAT}"""

EXTRACT_MAX_TOKENS = 2000

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class SolveRequest:
    """A problem to send to the remote solver."""

    prompt: str = ""
    image_base64: Optional[str] = None
    max_tokens: Optional[int] = None


@dataclass
class SolveResponse:
    """Model answer plus token usage when the service reports it."""

    text: str
    usage: Optional[Dict[str, int]] = None


def build_messages(request: SolveRequest) -> List[dict]:
    """Chat messages for ``request`` (image problems use a data URL part)."""
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    if request.image_base64:
        messages.append({
            "role": "user",
            "content": [
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/jpeg;base64,{request.image_base64}"},
                },
                {"type": "text", "text": IMAGE_PROMPT},
            ],
        })
    else:
        messages.append({
            "role": "user",
            "content": f"Solve this math problem:\n\nProblem: {request.prompt}\n\n{ANSWER_FORMAT}",
        })
    return messages


def parse_solution(text: str) -> dict:
    """Pull the JSON answer out of a model reply.

    Returns an empty dict when the reply holds no parseable JSON object.
    """
    match = _JSON_BLOCK.search(text or "")
    if not match:
        return {}
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


class SolverClient:
    """Thin client for the remote problem solver."""

    def __init__(self, config: Optional[SolverConfig] = None, client=None):
        """Initialize client.

        Args:
            config: Solver settings (model, token budget, key variable).
            client: Pre-built OpenAI-compatible client; created lazily if None.
        """
        self.config = config or SolverConfig()
        self._client = client

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = OpenAI(
                    api_key=os.environ.get(self.config.api_key_env),
                    base_url=self.config.base_url,
                )
            except openai.OpenAIError as e:
                raise ServiceError(f"Problem solver is not configured: {e}") from e
        return self._client

    def solve(self, request: SolveRequest) -> SolveResponse:
        """Send ``request`` and return the model's answer.

        Raises:
            ValueError: If neither a prompt nor an image is given.
            ServiceError: If the service is unreachable or rejects the call.
        """
        if not request.prompt and not request.image_base64:
            raise ValueError("A prompt or an image is required")

        try:
            completion = self.client.chat.completions.create(
                model=self.config.model,
                messages=build_messages(request),
                max_tokens=request.max_tokens or self.config.max_tokens,
                temperature=self.config.temperature,
            )
        except openai.OpenAIError as e:
            logger.error("Problem solver request failed: %s", e)
            raise ServiceError(f"Problem solver request failed: {e}") from e

        text = completion.choices[0].message.content or ""
        usage = None
        if completion.usage:
            usage = {
                "input_tokens": completion.usage.prompt_tokens,
                "output_tokens": completion.usage.completion_tokens,
            }
        return SolveResponse(text=text, usage=usage)

    def extract_problem(self, image_base64: str) -> str:
        """Transcribe and solve the problem shown in an image."""
        response = self.solve(SolveRequest(image_base64=image_base64, max_tokens=EXTRACT_MAX_TOKENS))
        return response.text
