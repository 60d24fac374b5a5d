"""AWS Bedrock client wrapper used by the AI-backed providers."""

import asyncio
import logging
import os
from typing import Dict, List, Optional, Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, BotoCoreError, ReadTimeoutError, ConnectTimeoutError
from dotenv import load_dotenv

from .errors import BedrockAPIError, ErrorType, ErrorContext

load_dotenv()

logger = logging.getLogger(__name__)


class BedrockClient:
    """
    Wrapper for the AWS Bedrock Runtime Converse API.

    Calls are made once; failures are wrapped in BedrockAPIError and the
    caller's fallback chain decides what happens next. The blocking boto3
    call runs in a worker thread so the event loop stays free.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        model_id: str = "amazon.nova-pro-v1:0",
        timeout: int = 10,
        runtime: Any = None
    ):
        """
        Initialize Bedrock client.

        Args:
            region: AWS region for Bedrock service
            model_id: Model ID used for Converse calls
            timeout: Connect and read timeout in seconds
            runtime: Optional pre-built bedrock-runtime client
        """
        self.region = region
        self.model_id = model_id
        self.timeout = timeout

        bearer_token = os.getenv("AWS_BEARER_TOKEN_BEDROCK") or os.getenv("BEDROCK_API_KEY")
        if bearer_token and not os.getenv("AWS_BEARER_TOKEN_BEDROCK"):
            os.environ["AWS_BEARER_TOKEN_BEDROCK"] = bearer_token.strip()

        if runtime is not None:
            self.runtime = runtime
        else:
            config_kwargs: Dict[str, Any] = {
                "region_name": region,
                "connect_timeout": timeout,
                "read_timeout": timeout,
                "retries": {"max_attempts": 0},
            }
            if bearer_token:
                config_kwargs["signature_version"] = "bearer"
            self.runtime = boto3.client("bedrock-runtime", config=Config(**config_kwargs))

        logger.info(
            f"Initialized BedrockClient: region={region}, model={model_id}, "
            f"auth={'api-key' if bearer_token else 'iam'}"
        )

    async def converse(
        self,
        prompt: str,
        image_bytes: Optional[bytes] = None,
        image_format: str = "png",
        temperature: float = 0.0,
        max_tokens: int = 1024,
        system_prompts: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Send one user turn (optionally with an image) and return the parsed answer.

        Args:
            prompt: User prompt text
            image_bytes: Optional raw image to attach
            image_format: Image format for the image block (png, jpeg, ...)
            temperature: Sampling temperature (0.0 = deterministic)
            max_tokens: Maximum tokens to generate
            system_prompts: Optional system prompts

        Returns:
            Dict with 'text', 'stop_reason' and 'usage'

        Raises:
            BedrockAPIError: On any service or transport failure
        """
        content: List[Dict[str, Any]] = []
        if image_bytes:
            content.append({
                "image": {"format": image_format, "source": {"bytes": image_bytes}}
            })
        content.append({"text": prompt})

        params: Dict[str, Any] = {
            "modelId": self.model_id,
            "messages": [{"role": "user", "content": content}],
            "inferenceConfig": {"temperature": temperature, "maxTokens": max_tokens},
        }
        if system_prompts:
            params["system"] = system_prompts

        try:
            response = await asyncio.to_thread(self.runtime.converse, **params)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.warning(f"Bedrock API error: code={error_code}")
            raise BedrockAPIError.from_client_error(
                error=e,
                operation="converse",
                recoverable=True,
                fallback_action="Try next provider"
            )
        except (ReadTimeoutError, ConnectTimeoutError) as e:
            raise BedrockAPIError(ErrorContext(
                error_type=ErrorType.BEDROCK_TIMEOUT,
                message=f"Bedrock converse timed out: {str(e)}",
                recoverable=True,
                fallback_action="Try next provider",
                original_exception=e
            ))
        except BotoCoreError as e:
            raise BedrockAPIError(ErrorContext(
                error_type=ErrorType.BEDROCK_SERVICE_ERROR,
                message=f"Unexpected error invoking Bedrock: {str(e)}",
                recoverable=True,
                fallback_action="Try next provider",
                original_exception=e
            ))

        logger.info(
            f"Bedrock converse successful: stop_reason={response.get('stopReason')}, "
            f"usage={response.get('usage')}"
        )
        return self._parse_converse_response(response)

    def _parse_converse_response(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """
        Parse Converse API response into a simplified format.

        Args:
            response: Raw response from Converse API

        Returns:
            Parsed response dict with 'text', 'stop_reason' and 'usage'
        """
        message = response.get("output", {}).get("message", {})
        text_parts = [
            block["text"] for block in message.get("content", []) if "text" in block
        ]
        return {
            "text": "\n".join(text_parts),
            "stop_reason": response.get("stopReason", "unknown"),
            "usage": response.get("usage", {}),
        }
