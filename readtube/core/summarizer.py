"""
Module for summarizing transcripts using LLM models.
"""

from typing import Optional

from langchain.chat_models import init_chat_model
from langchain_core.language_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate

from readtube.config import config
from readtube.core.prompts import SUMMARY_SYSTEM_PROMPTS, SUMMARY_USER_TEMPLATE
from readtube.core.text import clean_for_model, truncate
from readtube.models.schemas import SummaryOptions
from readtube.utils.error_handling import SummarizationFailed
from readtube.utils.logger import logging


class TranscriptSummarizer:
    """Class to handle transcript summarization operations."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.DEFAULT_SUMMARY_MODEL,
        llm: Optional[BaseChatModel] = None,
        provider: str = config.MODEL_PROVIDER,
        prompt_chars: int = config.TRANSCRIPT_PROMPT_CHARS,
        temperature: float = config.SUMMARY_TEMPERATURE,
        max_tokens: int = config.SUMMARY_MAX_TOKENS,
        timeout: int = config.LLM_TIMEOUT,
    ):
        """
        Initialize the summarizer.

        Args:
            api_key: Model provider API key, required unless ``llm`` is given
            model: Model name passed to ``init_chat_model``
            llm: A ready chat model, used as-is
            prompt_chars: Transcript characters sent to the model
        """
        self.model = model
        self.prompt_chars = prompt_chars
        if llm is not None:
            self.llm = llm
        else:
            if not api_key:
                raise ValueError("A model API key is required. Set GROQ_API_KEY in .env or pass it directly.")
            self.llm = init_chat_model(
                model=model,
                model_provider=provider,
                temperature=temperature,
                max_tokens=max_tokens,
                api_key=api_key,
                timeout=timeout,
            )

    def build_prompt(self, transcript: str, options: SummaryOptions):
        """Return the chat messages for one summarization call."""
        system_prompt = SUMMARY_SYSTEM_PROMPTS[options.language.value][options.style.value]
        prompt = ChatPromptTemplate.from_messages([
            ("system", system_prompt),
            ("human", SUMMARY_USER_TEMPLATE),
        ])
        text = truncate(clean_for_model(transcript), self.prompt_chars)
        return prompt.format_messages(
            max_length=options.max_length,
            style=options.style.value,
            transcript=text,
        )

    def summarize(self, transcript: str, options: Optional[SummaryOptions] = None) -> str:
        """
        Summarize a transcript text.

        ``options.max_length`` is a word target written into the prompt; the
        model output is returned as generated, never cut.

        Raises:
            SummarizationFailed: The model call failed or returned nothing
        """
        options = options or SummaryOptions()
        messages = self.build_prompt(transcript, options)

        logging.info(
            f"Summarizing {len(transcript)} chars with {self.model} "
            f"(style={options.style.value}, language={options.language.value})"
        )
        try:
            response = self.llm.invoke(messages)
        except Exception as e:
            logging.error(f"Summarization call failed: {type(e).__name__}: {e}")
            raise SummarizationFailed("The summarization service failed. Please try again.")

        summary = response.content if isinstance(response.content, str) else str(response.content)
        if not summary.strip():
            raise SummarizationFailed("The summarization service returned an empty summary.")
        return summary.strip()
