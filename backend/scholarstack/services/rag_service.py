"""
Grounded answer generation.

The system prompt is assembled from a fixed instruction block, the list of
every document in the project, and the retrieved chunks numbered
[Source 1]..[Source N]. After the model answers, every [Source N] marker is
mapped back to the Nth chunk; only chunks the answer actually cites become
citations.
"""
import re
import logging
from typing import Dict, List, Optional, Sequence

from scholarstack.core.config import settings
from scholarstack.core.errors import AnswerGenerationError
from scholarstack.schemas import Citation, GeneratedAnswer
from scholarstack.services import llm_clients
from scholarstack.services.llm_clients import Credential, LLMBackendError
from scholarstack.services.retriever import ChunkWithScore

logger = logging.getLogger(__name__)

SOURCE_MARKER = re.compile(r"\[Source (\d+)\]")

INSTRUCTIONS = """IMPORTANT INSTRUCTIONS:
1. Answer questions using ONLY the information provided in the context below. If asked about what documents you have access to, base your answer on the list provided above.
2. If the context doesn't contain enough information to answer the question, say so clearly.
3. ALWAYS cite your sources using [Source X] notation when referencing information.
4. When citing, try to be specific about which source supports each claim.
5. Do not make up or hallucinate information that isn't in the context.
6. Be concise but thorough in your explanations."""

NO_CONTEXT_RESPONSE = (
    "I couldn't find any relevant information in your documents to answer this question. "
    "Please try uploading more documents or rephrasing your question."
)


def truncate_preview(text: str, limit: Optional[int] = None) -> str:
    limit = settings.CITATION_PREVIEW_CHARS if limit is None else limit
    return text[:limit] + ("..." if len(text) > limit else "")


def build_context(chunks: Sequence[ChunkWithScore]) -> str:
    return "\n\n".join(
        f"[Source {index}] (From document: {chunk.document_name or 'Unknown Document'})\n{chunk.content}"
        for index, chunk in enumerate(chunks, start=1)
    )


def build_system_prompt(chunks: Sequence[ChunkWithScore], document_names: Sequence[str]) -> str:
    available_docs = ""
    if document_names:
        listing = "\n".join(f"- {name}" for name in document_names)
        available_docs = f"\n\nYou have access to the following documents in this project:\n{listing}"

    return (
        "You are a helpful research assistant for ScholarStack. Your role is to help researchers "
        "understand and synthesize information from their uploaded documents."
        f"{available_docs}\n\n"
        f"{INSTRUCTIONS}\n\n"
        f"Context from documents:\n{build_context(chunks)}"
    )


def extract_citations(response: str, chunks: Sequence[ChunkWithScore]) -> List[Citation]:
    """
    One citation per distinct chunk referenced by a [Source N] marker,
    in order of first mention. Out-of-range N is ignored.
    """
    citations = []
    seen_chunks = set()
    for match in SOURCE_MARKER.finditer(response):
        source_index = int(match.group(1)) - 1
        if not 0 <= source_index < len(chunks):
            continue
        chunk = chunks[source_index]
        if chunk.id in seen_chunks:
            continue
        seen_chunks.add(chunk.id)
        citations.append(Citation(
            chunk_id=chunk.id,
            document_id=chunk.document_id,
            document_name=chunk.document_name or "Unknown Document",
            text=truncate_preview(chunk.content),
        ))
    return citations


async def generate_chat_response(
    query: str,
    relevant_chunks: Sequence[ChunkWithScore],
    conversation_history: Sequence[Dict[str, str]],
    credential: Credential,
    all_document_names: Sequence[str] = (),
    custom_ai_model: Optional[str] = None,
) -> GeneratedAnswer:
    backend = llm_clients.get_backend(credential)
    model_name = custom_ai_model or backend.default_chat_model
    system_prompt = build_system_prompt(relevant_chunks, all_document_names)

    history = [
        {"role": m["role"], "content": m["content"]}
        for m in conversation_history
        if m.get("role") in ("user", "assistant")
    ]

    logger.info(
        f"Generating answer with {credential.provider.value}/{model_name} "
        f"({len(relevant_chunks)} sources, {len(history)} history turns)"
    )
    try:
        answer = await backend.chat(
            system_prompt=system_prompt,
            history=history,
            query=query,
            model=model_name,
            temperature=settings.CHAT_TEMPERATURE,
            max_tokens=settings.CHAT_MAX_TOKENS,
        )
    except LLMBackendError as e:
        logger.error(f"Error generating chat response: {e}")
        raise AnswerGenerationError(f"Failed to generate AI response: {e}", status_code=e.status_code) from e

    citations = extract_citations(answer, relevant_chunks)
    logger.info(f"Answer cites {len(citations)} of {len(relevant_chunks)} sources.")
    return GeneratedAnswer(response=answer, citations=citations)
