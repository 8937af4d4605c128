import json
import logging
import time
from flask import current_app
from doom_index.errors import ConfigurationError, ExternalApiError, ParsingError

logger = logging.getLogger(__name__)

PROVIDER = 'OpenAI'


class LLMGateway:
    def __init__(self, app_config=None):
        config = app_config or current_app.config
        self.model = config.get('LLM_MODEL', 'gpt-4.1-mini')
        self.api_key = config.get('OPENAI_API_KEY')
        self.timeout = config.get('HTTP_TIMEOUT_SECONDS', 10)

    @property
    def available(self):
        return bool(self.api_key)

    def call(self, messages, purpose, max_tokens=None, response_format=None):
        """
        Single chat completion.
        Returns: {content, prompt_tokens, completion_tokens, model, latency_ms}
        """
        if not self.api_key:
            raise ConfigurationError('OPENAI_API_KEY is not configured', missing_var='OPENAI_API_KEY')

        import openai
        client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout)

        kwargs = {
            'model': self.model,
            'messages': messages,
            'max_completion_tokens': max_tokens or 800,
        }
        if response_format:
            kwargs['response_format'] = response_format

        start_ms = int(time.time() * 1000)
        try:
            response = client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            logger.error(f"OpenAI call failed ({purpose}): {e}")
            raise ExternalApiError(PROVIDER, str(e), status=e.status_code) from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI call failed ({purpose}): {e}")
            raise ExternalApiError(PROVIDER, str(e)) from e

        usage = response.usage
        return {
            'content': response.choices[0].message.content or '',
            'prompt_tokens': usage.prompt_tokens if usage else 0,
            'completion_tokens': usage.completion_tokens if usage else 0,
            'model': self.model,
            'latency_ms': int(time.time() * 1000) - start_ms,
        }

    def generate_json(self, system_prompt, user_prompt, purpose='generate_json', max_tokens=None):
        """Ask for a JSON object and parse it. Raises ParsingError on non-JSON output."""
        result = self.call(
            [
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_prompt},
            ],
            purpose=purpose,
            max_tokens=max_tokens,
            response_format={'type': 'json_object'},
        )
        content = result['content'].strip()
        if content.startswith('```'):
            content = content.strip('`')
            if content.lower().startswith('json'):
                content = content[4:]
        try:
            parsed = json.loads(content)
        except ValueError as e:
            raise ParsingError(content[:200], f"LLM returned invalid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise ParsingError(content[:200], 'LLM returned JSON that is not an object')

        logger.info(f"LLM JSON generated ({purpose}): {result['prompt_tokens']}+{result['completion_tokens']} tokens "
                    f"in {result['latency_ms']}ms")
        return parsed
