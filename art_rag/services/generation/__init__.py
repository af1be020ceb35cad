from art_rag.services.generation.answer_generator import AnswerGenerator, create_chat_model

__all__ = ["AnswerGenerator", "create_chat_model"]
