"""Gradio chat panel for the AI solver."""

from typing import Generator, List, Optional, Tuple

import gradio as gr

from ai_solver.chat.chat_handler import ChatHandler
from ai_solver.chat.session import ChatSession
from ai_solver.exceptions import SessionBusyError, ValidationError
from ai_solver.syllabus.catalog import SyllabusCatalog
from ai_solver.ui.history_manager import GradioHistoryManager
from ai_solver.utils.logger import logger

ALL_CHAPTERS = "all"


def _normalize_chapter(chapter_id: Optional[str]) -> Optional[str]:
    if not chapter_id or chapter_id == ALL_CHAPTERS:
        return None
    return chapter_id


def subject_choices(catalog: SyllabusCatalog, class_id: Optional[str]) -> List[Tuple[str, str]]:
    syllabus_class = catalog.find_class(class_id)
    if syllabus_class is None:
        return []
    return [(subject.display_name, subject.id) for subject in syllabus_class.subjects]


def chapter_choices(
    catalog: SyllabusCatalog, class_id: Optional[str], subject_id: Optional[str]
) -> List[Tuple[str, str]]:
    subject = catalog.find_subject(class_id, subject_id)
    if subject is None:
        return []
    return [("All chapters", ALL_CHAPTERS)] + [
        (chapter.title_bn or chapter.title, chapter.id) for chapter in subject.chapters
    ]


def create_chat_interface(chat_handler: ChatHandler, catalog: SyllabusCatalog) -> "gr.Blocks":
    """
    Create the solver chat panel.

    Args:
        chat_handler: ChatHandler used to send questions
        catalog: Syllabus hierarchy for the class/subject/chapter selectors

    Returns:
        Configured Gradio Blocks interface
    """
    logger.info("Creating Gradio chat interface")

    def on_class_change(class_id: Optional[str]):
        return (
            gr.update(choices=subject_choices(catalog, class_id), value=None),
            gr.update(choices=[], value=None),
            gr.update(choices=[], value=None),
        )

    def on_subject_change(class_id: Optional[str], subject_id: Optional[str]):
        subject = catalog.find_subject(class_id, subject_id)
        prompts = subject.sample_prompts if subject else []
        return (
            gr.update(choices=chapter_choices(catalog, class_id, subject_id), value=None),
            gr.update(choices=prompts, value=None),
        )

    def on_sample_select(prompt: Optional[str], current: str) -> str:
        return prompt or current

    def chat_fn(
        message: str,
        class_id: Optional[str],
        subject_id: Optional[str],
        chapter_id: Optional[str],
        session: ChatSession,
    ) -> Generator[tuple, None, None]:
        """
        Stream an answer into the chatbot.

        Yields:
            (chat history, input box value, session)
        """
        logger.info(f"Received question (length: {len(message or '')} chars)")
        history_manager = GradioHistoryManager(session)

        try:
            for update in chat_handler.stream_response(
                session, class_id, subject_id, message, chapter_id=_normalize_chapter(chapter_id)
            ):
                if update.error:
                    logger.warning(f"Received error in stream: {update.error}")
                    gr.Warning(update.error)
                elif update.metadata:
                    history_manager.set_stats(update.metadata)
                yield history_manager.get_history(), "", session
        except (ValidationError, SessionBusyError) as e:
            logger.info(f"Question rejected: {e}")
            gr.Warning(str(e))
            yield history_manager.get_history(), message, session

    def clear_fn(session: ChatSession):
        """Clear the chat history."""
        logger.info("User requested to clear chat history")
        chat_handler.clear_history(session)
        gr.Info("Chat history cleared")
        return [], session

    with gr.Blocks(title="AI Solver") as demo:
        gr.Markdown(
            """
            # AI Solver

            Pick a class and subject, then ask a question. Answers stream in as they are written.
            """
        )
        session_state = gr.State(ChatSession)

        with gr.Row():
            class_dropdown = gr.Dropdown(
                choices=[(c.display_name, c.id) for c in catalog.classes],
                label="Class",
                interactive=True,
            )
            subject_dropdown = gr.Dropdown(choices=[], label="Subject", interactive=True)
            chapter_dropdown = gr.Dropdown(choices=[], label="Chapter (optional)", interactive=True)

        sample_prompts = gr.Radio(choices=[], label="Sample questions", interactive=True)

        chatbot = gr.Chatbot(label="Conversation", height=500, type="messages")

        with gr.Row():
            with gr.Column(scale=4):
                msg = gr.Textbox(
                    label="Question",
                    placeholder="Type your question here...",
                    lines=3,
                    container=False,
                )
            with gr.Column(scale=1):
                submit_btn = gr.Button("Send", variant="primary")
                clear_btn = gr.Button("Clear")

        class_dropdown.change(
            on_class_change,
            [class_dropdown],
            [subject_dropdown, chapter_dropdown, sample_prompts],
            queue=False,
        )
        subject_dropdown.change(
            on_subject_change,
            [class_dropdown, subject_dropdown],
            [chapter_dropdown, sample_prompts],
            queue=False,
        )
        sample_prompts.change(on_sample_select, [sample_prompts, msg], [msg], queue=False)

        chat_inputs = [msg, class_dropdown, subject_dropdown, chapter_dropdown, session_state]
        chat_outputs = [chatbot, msg, session_state]
        submit_event = msg.submit(chat_fn, chat_inputs, chat_outputs, queue=True)
        click_event = submit_btn.click(chat_fn, chat_inputs, chat_outputs, queue=True)
        clear_btn.click(
            clear_fn,
            [session_state],
            [chatbot, session_state],
            queue=False,
            cancels=[submit_event, click_event],
        )

    return demo
