"""
Question answering over a stored video transcript.
"""

import uuid
from typing import Any, Dict, List, Optional

from langchain.chat_models import init_chat_model
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from sqlalchemy.orm import Session

from readtube.config import config
from readtube.core.prompts import CHAT_SYSTEM_TEMPLATES
from readtube.core.text import clean_for_model, detect_language, format_clock, truncate
from readtube.db.crud import add_chat_message, get_chat_history
from readtube.db.models import Video
from readtube.utils.error_handling import InvalidRequestError, UpstreamServiceError
from readtube.utils.logger import logging


class VideoChat:
    """Answer questions about one video using only its transcript as context."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.DEFAULT_SUMMARY_MODEL,
        llm: Optional[BaseChatModel] = None,
        provider: str = config.MODEL_PROVIDER,
        transcript_chars: int = config.CHAT_TRANSCRIPT_CHARS,
        history_limit: int = 10,
    ):
        self.transcript_chars = transcript_chars
        self.history_limit = history_limit
        if llm is not None:
            self.llm = llm
        else:
            if not api_key:
                raise ValueError("A model API key is required. Set GROQ_API_KEY in .env or pass it directly.")
            self.llm = init_chat_model(
                model=model,
                model_provider=provider,
                temperature=config.CHAT_TEMPERATURE,
                max_tokens=config.CHAT_MAX_TOKENS,
                api_key=api_key,
                timeout=config.LLM_TIMEOUT,
            )

    @staticmethod
    def reply_language(question: str, transcript: str) -> str:
        """Answer in the language of the question, else of the transcript, else English."""
        for text in (question, transcript):
            detected = detect_language(text)
            if detected != "unknown":
                return detected
        return "en"

    def _history(self, db: Session, video_id: str, session_id: str) -> List[BaseMessage]:
        messages: List[BaseMessage] = []
        for entry in get_chat_history(db, video_id, session_id, limit=self.history_limit):
            messages.append(HumanMessage(content=entry.message))
            messages.append(AIMessage(content=entry.response))
        return messages

    def answer(
        self,
        db: Session,
        video: Video,
        user_id: str,
        question: str,
        language: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Answer a question about a video and record the exchange.

        Args:
            db: Database session
            video: Stored video with a transcript
            user_id: Asking user
            question: The user's question
            language: Answer language, ``en`` or ``pl``; detected when None
            session_id: Existing conversation to continue, or None for a new one

        Returns:
            Dict with ``answer`` and ``session_id``
        """
        transcript = clean_for_model(video.transcript or "")
        if not transcript:
            raise InvalidRequestError("This video has no transcript to chat about.")

        language = language or self.reply_language(question, transcript)
        session_id = session_id or str(uuid.uuid4())
        history = self._history(db, video.id, session_id)

        prompt = ChatPromptTemplate.from_messages([
            ("system", CHAT_SYSTEM_TEMPLATES.get(language, CHAT_SYSTEM_TEMPLATES["en"])),
            MessagesPlaceholder("history"),
            ("human", "{question}"),
        ])
        messages = prompt.format_messages(
            title=video.title,
            channel=video.channel_name or "",
            duration=format_clock(video.duration_seconds) or "?",
            transcript=truncate(transcript, self.transcript_chars),
            history=history,
            question=question,
        )

        logging.info(f"Chat on {video.id} (session {session_id}, {len(history) // 2} earlier turns)")
        try:
            response = self.llm.invoke(messages)
        except Exception as e:
            logging.error(f"Chat call failed: {type(e).__name__}: {e}")
            raise UpstreamServiceError("The chat service failed. Please try again.")

        answer = response.content if isinstance(response.content, str) else str(response.content)
        if not answer.strip():
            raise UpstreamServiceError("The chat service returned an empty answer.")

        add_chat_message(db, video.id, user_id, session_id, question, answer.strip())
        return {"answer": answer.strip(), "session_id": session_id}
