"""
Ask the hosted model for an assessment and always hand back a usable one.
"""

import asyncio
import json
import sys
from typing import Any, Dict

from pydantic import ValidationError

from selfcheck.backends import BackendError, ModelBackend
from selfcheck.prompt import build_prompt
from selfcheck.schemas import FALLBACK_ASSESSMENT, Assessment, SymptomRecord, WorkContext

DEFAULT_TIMEOUT = 30.0


def parse_model_json(response: str) -> Dict[str, Any]:
    """Parse the model's text as a JSON object, tolerating code fences and surrounding prose."""
    try:
        parsed = json.loads(response)
    except json.JSONDecodeError:
        # Extract JSON if wrapped in markdown code blocks or has extra text
        cleaned_response = response
        if "```json" in response:
            cleaned_response = response.split("```json")[1].split("```")[0].strip()
        elif "```" in response:
            cleaned_response = response.split("```")[1].split("```")[0].strip()
        # If no markdown blocks, try to find the first '{' and last '}'
        elif "{" in response and "}" in response:
            start = response.find("{")
            end = response.rfind("}") + 1
            cleaned_response = response[start:end]

        parsed = json.loads(cleaned_response)

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def is_fallback(assessment: Assessment) -> bool:
    return assessment == FALLBACK_ASSESSMENT


class AssessmentClient:
    def __init__(self, backend: ModelBackend, timeout: float = DEFAULT_TIMEOUT):
        self.backend = backend
        self.timeout = timeout

    async def assess(self, symptoms: SymptomRecord, context: WorkContext) -> Assessment:
        """
        One request, no retries. Any failure (service error, deadline, unparseable
        or invalid output) yields FALLBACK_ASSESSMENT. Cancellation by the caller
        is not absorbed.
        """
        prompt = build_prompt(symptoms, context)

        try:
            response = await asyncio.wait_for(
                self.backend.submit(prompt.text, prompt.schema),
                timeout=self.timeout,
            )
            return Assessment.model_validate(parse_model_json(response))

        except asyncio.TimeoutError:
            print(f"Warning: {self.backend.name} did not answer within {self.timeout}s, using fallback", file=sys.stderr)
        except BackendError as e:
            print(f"Warning: {e}, using fallback", file=sys.stderr)
        except (json.JSONDecodeError, ValueError, ValidationError) as e:
            print(f"Warning: Failed to parse {self.backend.name} response: {e}", file=sys.stderr)
        except Exception as e:
            print(f"Warning: Error calling {self.backend.name}: {e!r}, using fallback", file=sys.stderr)

        return FALLBACK_ASSESSMENT
