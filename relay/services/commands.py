"""Built-in command handlers and the default command catalog.

Handlers take ``(ctx, args)``, perform at most one state change through the
context, then reply. Expected failures (bad usage, unknown poll, completion
errors) are answered here; anything else propagates to the router, which
logs it and sends a generic apology.
"""

import random
from typing import Sequence

from relay.logging_config import get_logger
from relay.services.authorization import normalize_identity
from relay.services.canned_content import load_canned
from relay.services.command_parser import split_quoted
from relay.services.command_router import SELECTION_PREFIX, CommandContext, CommandRegistry, CommandSpec
from relay.services.errors import CompletionError, InvalidOptionError, InvalidPollError, PollNotFoundError

logger = get_logger("commands")

MENU_ROWS_PER_SECTION = 10
TEXT_MENU_ROWS_PER_SECTION = 8
MENU_TITLE = "WhatsApp AI Chatbot Menu"

SUMMARY_PROMPT = "You are a concise summarizer. Produce a short summary (2-4 sentences)."
MSG_NEEDS_COMPLETION = "{feature} requires OpenAI. Configure OPENAI_API_KEY."


def safe_truncate(text: str, limit: int = 3000) -> str:
    return text if len(text) <= limit else text[:limit] + "\n\n(truncated)"


def format_tally(question: str, tally: Sequence[tuple[str, int]]) -> str:
    lines = [f"Poll: {question}"]
    for idx, (option, count) in enumerate(tally):
        label = "vote" if count == 1 else "votes"
        lines.append(f"{idx}. {option} - {count} {label}")
    return "\n".join(lines)


def build_menu_payload(registry: CommandRegistry) -> dict:
    """Interactive list payload; each row id is the ``cmd:<id>`` selection form."""
    sections = []
    for category, specs in registry.by_category().items():
        rows = [
            {
                "id": f"{SELECTION_PREFIX}{spec.name}",
                "title": spec.title[:24],
                "description": spec.description[:72],
            }
            for spec in specs[:MENU_ROWS_PER_SECTION]
        ]
        sections.append({"title": category[:24], "rows": rows})
    return {
        "type": "list",
        "header": {"type": "text", "text": MENU_TITLE},
        "body": {"text": "Select a feature from the menu (or send /help)"},
        "footer": {"text": "Tip: you can also type commands directly"},
        "action": {"button": "Open Menu", "sections": sections},
    }


def render_text_menu(registry: CommandRegistry) -> str:
    lines = [MENU_TITLE]
    for category, specs in registry.by_category().items():
        lines.append(f"\n*{category}*")
        for spec in specs[:TEXT_MENU_ROWS_PER_SECTION]:
            lines.append(f"{spec.usage} - {spec.description}")
    lines.append("\nTip: send /help for full details or /menu to reopen this menu.")
    return "\n".join(lines)


async def _complete(ctx: CommandContext, messages: list[dict], feature: str, failure_text: str) -> str | None:
    if ctx.completion is None:
        await ctx.send_text(MSG_NEEDS_COMPLETION.format(feature=feature))
        return None
    try:
        return await ctx.completion.generate_reply(messages)
    except CompletionError as e:
        logger.warning(f"{feature} completion failed: {e}", extra={"context": {"sender": ctx.sender}})
        await ctx.send_text(failure_text)
        return None


# General


async def cmd_help(ctx: CommandContext, args: Sequence[str]) -> None:
    lines = ["WhatsApp AI Chatbot - commands quick reference:"]
    for category, specs in ctx.registry.by_category().items():
        lines.append(f"\n*{category}*")
        lines.extend(f"{spec.usage} - {spec.description}" for spec in specs)
    await ctx.send_text("\n".join(lines))


async def cmd_menu(ctx: CommandContext, args: Sequence[str]) -> None:
    result = await ctx.send_menu(build_menu_payload(ctx.registry))
    if not result.ok:
        logger.warning(
            "Interactive menu failed, falling back to text",
            extra={"context": {"sender": ctx.sender, "error": result.error}},
        )
        await ctx.send_text(render_text_menu(ctx.registry))


async def cmd_reset(ctx: CommandContext, args: Sequence[str]) -> None:
    ctx.store.reset(ctx.sender)
    await ctx.send_text("✅ Conversation reset. Say hi to start fresh.")


# Utilities


async def cmd_summary(ctx: CommandContext, args: Sequence[str]) -> None:
    history = ctx.store.get_conversation(ctx.sender)[1:]
    if not history:
        await ctx.send_text("Nothing to summarize yet.")
        return
    messages = [{"role": "system", "content": SUMMARY_PROMPT}, *history]
    summary = await _complete(ctx, messages, "Summary", "Sorry, couldn't create a summary right now.")
    if summary is not None:
        await ctx.send_text(f"📝 Summary:\n{safe_truncate(summary, 2000)}")


async def cmd_export(ctx: CommandContext, args: Sequence[str]) -> None:
    transcript = ctx.store.export_text(ctx.sender) or "(no messages yet)"
    await ctx.send_text(f"📂 Export:\n{safe_truncate(transcript, 3000)}")


async def cmd_translate(ctx: CommandContext, args: Sequence[str]) -> None:
    if len(args) < 2:
        await ctx.send_text("Usage: /translate <lang> <text>")
        return
    lang, text = args[0], " ".join(args[1:])
    prompt = f"Translate the following text to {lang} and return only the translation:\n\n{text}"
    translation = await _complete(
        ctx, [{"role": "user", "content": prompt}], "Translate", "Sorry, translation failed."
    )
    if translation is not None:
        await ctx.send_text(f"🔤 Translation ({lang}):\n{translation}")


async def cmd_define(ctx: CommandContext, args: Sequence[str]) -> None:
    term = " ".join(args).strip()
    if not term:
        await ctx.send_text("Usage: /define <word>")
        return
    prompt = f'Define "{term}" in 2-3 sentences, include a simple example sentence.'
    definition = await _complete(
        ctx, [{"role": "user", "content": prompt}], "Define", "Sorry, couldn't fetch definition."
    )
    if definition is not None:
        await ctx.send_text(f"📚 Definition:\n{definition}")


async def cmd_tts(ctx: CommandContext, args: Sequence[str]) -> None:
    if not args:
        await ctx.send_text("Usage: /tts <text>")
        return
    await ctx.send_text("⚠️ TTS not configured on this server.")


# Media


async def cmd_media(ctx: CommandContext, args: Sequence[str]) -> None:
    media = ctx.store.get_last_media(ctx.sender)
    if media is None:
        await ctx.send_text("I don't have any recent media from you. Send an image/video/document first.")
        return
    lines = ["📎 Last media you sent:", f"ID: {media.media_id}"]
    if media.filename:
        lines.append(f"File: {media.filename}")
    if media.mime_type:
        lines.append(f"Type: {media.mime_type}")
    await ctx.send_text("\n".join(lines))


# Fun


def _with_name(args: Sequence[str], line: str) -> str:
    name = " ".join(args).strip()
    return f"{name}, {line}" if name else line


async def cmd_joke(ctx: CommandContext, args: Sequence[str]) -> None:
    await ctx.send_text(random.choice(load_canned("jokes")))


async def cmd_meme(ctx: CommandContext, args: Sequence[str]) -> None:
    topic = " ".join(args).strip() or "When your code runs on first try"
    bottom = random.choice(load_canned("meme_bottoms"))
    await ctx.send_text(f"Top: {topic}\nBottom: {bottom}")


async def cmd_flirt(ctx: CommandContext, args: Sequence[str]) -> None:
    await ctx.send_text(_with_name(args, random.choice(load_canned("flirts"))))


async def cmd_compliment(ctx: CommandContext, args: Sequence[str]) -> None:
    await ctx.send_text(_with_name(args, random.choice(load_canned("compliments"))))


async def cmd_insult(ctx: CommandContext, args: Sequence[str]) -> None:
    target = " ".join(args).strip() or "You"
    if ctx.safety.touches_protected_class(target):
        await ctx.send_text("I won't generate insults targeting protected groups. Keep it playful and safe.")
        return
    if ctx.safety.contains_prohibited_term(target):
        await ctx.send_text("Please avoid profanity.")
        return
    await ctx.send_text(f"{target}, {random.choice(load_canned('insults'))}")


async def cmd_wasted(ctx: CommandContext, args: Sequence[str]) -> None:
    name = " ".join(args).strip()
    if name:
        await ctx.send_text(f"💥 WASTED - {name} took it too far 🤪")
    else:
        await ctx.send_text("💥 WASTED - That was legendary 🤪")


# Group

POLL_USAGE = 'Usage: /poll "Question" "Option1" "Option2" [...]. Use quotes around each.'
VOTE_USAGE = "Usage: /vote <pollId> <optionIndex>"


async def cmd_poll(ctx: CommandContext, args: Sequence[str]) -> None:
    tokens = split_quoted(ctx.command.rest) if args else []
    if len(tokens) < 3:
        await ctx.send_text(POLL_USAGE)
        return
    try:
        poll = ctx.polls.create(tokens[0], tokens[1:], ctx.sender)
    except InvalidPollError as e:
        await ctx.send_text(f"⚠️ {e}.\n{POLL_USAGE}")
        return
    options = "\n".join(f"{idx}. {option}" for idx, option in enumerate(poll.options))
    await ctx.send_text(
        f"✅ Poll created: {poll.poll_id}\nQ: {poll.question}\n{options}\nTo vote: /vote {poll.poll_id} <optionIndex>"
    )


async def cmd_vote(ctx: CommandContext, args: Sequence[str]) -> None:
    if len(args) < 2:
        await ctx.send_text(VOTE_USAGE)
        return
    poll_id = args[0].lower()
    try:
        option_index = int(args[1])
    except ValueError:
        await ctx.send_text(VOTE_USAGE)
        return

    try:
        tally = ctx.polls.vote(poll_id, ctx.sender, option_index)
    except PollNotFoundError:
        await ctx.send_text("Poll not found.")
        return
    except InvalidOptionError:
        await ctx.send_text("Invalid option index.")
        return

    question = ctx.polls.get(poll_id).question
    await ctx.send_text(f"✅ Your vote for option {option_index} recorded.")
    await ctx.send_text(format_tally(question, tally))


async def cmd_results(ctx: CommandContext, args: Sequence[str]) -> None:
    if not args:
        await ctx.send_text("Usage: /results <pollId>")
        return
    try:
        poll = ctx.polls.get(args[0].lower())
    except PollNotFoundError:
        await ctx.send_text("Poll not found.")
        return
    await ctx.send_text(format_tally(poll.question, poll.tally))


# Admin


async def cmd_broadcast(ctx: CommandContext, args: Sequence[str]) -> None:
    message = ctx.command.rest.strip() if args else ""
    if not message:
        await ctx.send_text("Usage: /broadcast <message>")
        return
    recipients = [number for number in (normalize_identity(n) for n in ctx.broadcast_recipients) if number]
    if not recipients:
        await ctx.send_text("No recipients configured (BROADCAST_NUMBERS).")
        return

    await ctx.send_text(f"Sending broadcast to {len(recipients)} recipients...")
    failed = 0
    for number in recipients:
        result = await ctx.send_text(message, to=number)
        if not result.ok:
            failed += 1
    logger.info(
        "Broadcast finished",
        extra={"context": {"sender": ctx.sender, "recipients": len(recipients), "failed": failed}},
    )
    await ctx.send_text(f"Broadcast done. Sent: {len(recipients) - failed}. Failed: {failed}")


async def cmd_stats(ctx: CommandContext, args: Sequence[str]) -> None:
    stats = ctx.store.stats()
    await ctx.send_text(
        f"Stats:\nSessions: {stats['sessions']}\nTurns: {stats['turns']}\nPolls: {len(ctx.polls)}"
    )


DEFAULT_COMMANDS = (
    CommandSpec("help", cmd_help, "Help", "Show help and commands", "/help"),
    CommandSpec("menu", cmd_menu, "Menu", "Open interactive menu", "/menu"),
    CommandSpec("reset", cmd_reset, "Reset", "Reset your conversation", "/reset"),
    CommandSpec("summary", cmd_summary, "Summary", "Summarize the conversation", "/summary", "Utilities"),
    CommandSpec("export", cmd_export, "Export", "Export recent conversation", "/export", "Utilities"),
    CommandSpec(
        "translate", cmd_translate, "Translate", "Translate text to target language",
        "/translate <lang> <text>", "Utilities",
    ),
    CommandSpec("define", cmd_define, "Define", "Get a concise definition", "/define <word>", "Utilities"),
    CommandSpec("tts", cmd_tts, "Text to Speech", "Text to speech (not configured)", "/tts <text>", "Utilities"),
    CommandSpec("media", cmd_media, "Last media", "Show the last media you sent", "/media", "Media"),
    CommandSpec("joke", cmd_joke, "Joke", "Tell a joke", "/joke", "Fun"),
    CommandSpec("meme", cmd_meme, "Meme text", "Generate meme caption", "/meme <topic>", "Fun"),
    CommandSpec("flirt", cmd_flirt, "Flirt", "Send a playful flirt", "/flirt [name]", "Fun"),
    CommandSpec("compliment", cmd_compliment, "Compliment", "Send a compliment", "/compliment [name]", "Fun"),
    CommandSpec("insult", cmd_insult, "Insult (playful)", "Send a mild playful insult", "/insult [name]", "Fun"),
    CommandSpec("wasted", cmd_wasted, "Wasted", "Send wasted meme", "/wasted [name]", "Fun"),
    CommandSpec("poll", cmd_poll, "Poll", "Create a simple poll", '/poll "Question" "Option1" "Option2"', "Group"),
    CommandSpec("vote", cmd_vote, "Vote", "Vote in a poll", "/vote <pollId> <optionIndex>", "Group"),
    CommandSpec("results", cmd_results, "Results", "Show poll results", "/results <pollId>", "Group"),
    CommandSpec(
        "broadcast", cmd_broadcast, "Broadcast", "Admin: send broadcast", "/broadcast <message>", "Admin",
        admin_only=True,
    ),
    CommandSpec("stats", cmd_stats, "Stats", "Admin: show usage stats", "/stats", "Admin", admin_only=True),
)


def build_default_registry() -> CommandRegistry:
    return CommandRegistry(DEFAULT_COMMANDS)
