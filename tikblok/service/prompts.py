from llama_index.core import PromptTemplate


COMMENT_SUMMARY_PROMPT = PromptTemplate(
    """Give a concise summary of the following Minecraft video comments so that a reader gets the general sentiment of the comment section. Speak like a Minecraft villager. Do not make assumptions or add information that is not present in the comments. You may share opinions, but do not make anything up:
{comment_texts}

Do not repeat or quote the comments. Give the overall sentiment, the majority opinion: what people generally think of the video they just watched. You do not have to cover every comment.
The summary is shown at the top of the comment section, so readers have the comments right below it."""
)
