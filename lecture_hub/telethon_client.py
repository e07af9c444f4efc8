"""Telethon bot that lets students browse and download lectures and admins upload them."""

import asyncio
import datetime
import functools
import logging
import os
import time
from typing import Optional

from telethon import Button, TelegramClient, events

from . import accounting, config, crud, file_store, lectures, stats
from .database import SessionLocal
from .dedup import UpdateDeduplicator
from .errors import LectureHubError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

client: Optional[TelegramClient] = None
_handlers_registered = False
_client_started = False

# Store last startup error for diagnostics
_last_startup_error = None

# Text updates already handled; Telegram may redeliver after a reconnect
processed_updates = UpdateDeduplicator(capacity=1000)

LECTURE_LIST_LIMIT = 50

BTN_LECTURES = "📚 Lectures"
BTN_STATS = "📊 Statistics"
BTN_HELP = "❓ Help"
BTN_ADMIN = "👨‍💼 Admin panel"

NO_RIGHTS = "❌ You do not have admin rights."
GENERIC_ERROR = "Something went wrong. Please try again."


def bot_configured() -> bool:
    return bool(config.API_ID and config.API_HASH and config.BOT_TOKEN)


def get_client() -> TelegramClient:
    """Create the Telethon client on first use."""
    global client
    if client is None:
        client = TelegramClient(config.SESSION_NAME, config.API_ID, config.API_HASH)
        client.parse_mode = None
    return client


def _run_db(func, *args, **kwargs):
    db = SessionLocal()
    try:
        return func(db, *args, **kwargs)
    finally:
        db.close()


async def run_db(func, *args, **kwargs):
    """Run ``func(db, ...)`` with a fresh session in a worker thread."""
    return await asyncio.to_thread(_run_db, func, *args, **kwargs)


# Message text helpers


def format_file_size(size: int) -> str:
    """Human readable size: 0 B, 512 B, 1.5 KB, 20 MB."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 1):g} {units[index]}"


def web_panel_url() -> Optional[str]:
    url = config.WEB_PANEL_URL
    return url if url and url.startswith("https://") else None


def stats_message(totals: dict, detailed: bool = False) -> str:
    storage_gb = totals["storage_used"] / (1024 ** 3)
    header = "📊 Detailed bot statistics:" if detailed else "📊 Lecture statistics:"
    lines = [
        header,
        "",
        f"📚 Lectures: {totals['total_lectures']}",
        f"👥 Students: {totals['active_students']}",
        f"⬇️ Downloads: {totals['total_downloads']}",
        f"💾 Storage used: {storage_gb:.2f} GB",
    ]
    if detailed:
        url = web_panel_url()
        lines += ["", f"🌐 Web panel: {url}" if url else "🌐 Web panel is not deployed yet"]
    return "\n".join(lines)


def help_message() -> str:
    url = web_panel_url()
    size_limit = format_file_size(config.MAX_FILE_SIZE)
    return "\n".join([
        "❓ Help",
        "",
        "📚 Commands:",
        "• /start - start using the bot",
        "• /lectures - browse lectures",
        "• /help - this help",
        "• /admin - statistics (admins only)",
        "",
        "🔧 How it works:",
        "• Students browse and download materials",
        "• Admins upload files through the bot or the web panel",
        f"• PDF files and images are supported (up to {size_limit})",
        "",
        f"🌐 Web panel: {url}" if url else "🌐 Web panel is not deployed yet",
    ])


def lecture_caption(lecture) -> str:
    parts = [f"📄 {lecture.title}"]
    if lecture.description:
        parts.append(lecture.description)
    parts += ["", f"📖 Subject: {lecture.subject}", f"💾 Size: {format_file_size(lecture.file_size)}"]
    return "\n".join(parts)


def upload_title(caption: Optional[str], file_name: str) -> str:
    """Lecture title for a bot upload: the caption, else the file name without extension."""
    caption = (caption or "").strip()
    if caption:
        return caption
    return os.path.splitext(file_name)[0] or file_name


def photo_title(caption: Optional[str], today: Optional[datetime.date] = None) -> str:
    caption = (caption or "").strip()
    if caption:
        return caption
    today = today or datetime.date.today()
    return f"Image {today:%d.%m.%Y}"


def main_menu_buttons(is_admin: bool):
    rows = [
        [Button.text(BTN_LECTURES, resize=True), Button.text(BTN_STATS, resize=True)],
        [Button.text(BTN_HELP, resize=True)],
    ]
    if is_admin:
        rows.append([Button.text(BTN_ADMIN, resize=True)])
    return rows


def lecture_buttons(items):
    return [[Button.inline(f"📄 {lecture.title}", data=f"download_{lecture.id}")] for lecture in items]


# Caller resolution


async def resolve_caller(event):
    """Look up the registered user behind an update, or None."""
    return await run_db(crud.get_user_by_telegram_id, str(event.sender_id))


def handler(require_admin: bool = False):
    """Resolve the caller once and enforce the admin flag before ``func`` runs."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(event):
            try:
                caller = await resolve_caller(event)
                if caller is None:
                    await event.respond("Please send /start first.")
                    return
                if require_admin and not caller.is_admin:
                    await event.respond(NO_RIGHTS)
                    return
                await func(event, caller)
            except Exception as e:
                logger.error(f"Error in {func.__name__}: {e}", exc_info=True)
                await event.respond(GENERIC_ERROR)
        return wrapper
    return decorator


# Views


async def show_main_menu(event, is_admin: bool):
    text = "👋 Welcome!\n\n📚 Here you can find the course materials.\n\n"
    if is_admin:
        text += "👨‍💼 You are an admin: send a PDF or an image to upload it.\n\n"
    text += "Choose an action:"
    await event.respond(text, buttons=main_menu_buttons(is_admin))


async def show_lectures(event):
    items = await run_db(crud.list_lectures, limit=LECTURE_LIST_LIMIT)
    if not items:
        await event.respond(
            "📚 No lectures yet.\n\nAdmins can add them through the web panel or by sending files to the bot."
        )
        return
    await event.respond(f"📚 Available lectures:\n\nTotal: {len(items)}", buttons=lecture_buttons(items))


async def show_stats(event, detailed: bool = False):
    totals = await run_db(stats.compute_stats)
    buttons = [[Button.inline("📚 View lectures", data="view_lectures")]]
    url = web_panel_url()
    if detailed and url:
        buttons = [[Button.url("🌐 Open web panel", url)]]
    await event.respond(stats_message(totals, detailed=detailed), buttons=buttons)


async def show_help(event):
    await event.respond(help_message(), buttons=[[Button.inline("📚 View lectures", data="view_lectures")]])


async def send_lecture(event, caller, lecture_id: str):
    """Deliver a lecture file, then count the download."""
    lecture = await run_db(crud.get_lecture_by_id, lecture_id)
    if not lecture:
        await event.respond("❌ Lecture not found")
        return

    back = [Button.inline("📚 All lectures", data="view_lectures")]
    delete = [Button.inline("🗑️ Delete lecture", data=f"delete_{lecture.id}")]

    if not file_store.file_exists(lecture.file_path):
        logger.warning(f"File for lecture {lecture.id} is missing: {lecture.file_path}")
        await event.respond(
            f"❌ File \"{lecture.file_name}\" was not found on the server.\n\n"
            f"It may have been removed or damaged.",
            buttons=[back, delete] if caller.is_admin else [back],
        )
        return

    try:
        await event.client.send_file(
            event.chat_id,
            lecture.file_path,
            caption=lecture_caption(lecture),
            buttons=[back, delete] if caller.is_admin else [back],
        )
    except Exception as e:
        logger.error(f"Error sending {lecture.file_name}: {e}", exc_info=True)
        await event.respond("❌ Could not send the file. Please try again.")
        return

    try:
        await run_db(accounting.record_download, caller.id, lecture.id)
    except LectureHubError as e:
        logger.warning(f"Delivered {lecture.id} but could not count the download: {e}")
    logger.info(f"✅ Sent {lecture.file_name} to {caller.telegram_id}")


async def delete_lecture(event, lecture_id: str):
    try:
        await run_db(lectures.delete_lecture, lecture_id)
    except NotFoundError:
        await event.respond("❌ Lecture not found")
        return
    await event.respond("✅ Lecture deleted.")
    await show_lectures(event)


async def ingest_upload(event, caller):
    """Store a document or photo sent by an admin as a lecture."""
    caption = event.message.message or ""
    if event.photo:
        original_name = f"image_{int(time.time() * 1000)}.jpg"
        content_type = "image/jpeg"
        title = photo_title(caption)
    else:
        original_name = event.file.name or f"lecture_{int(time.time() * 1000)}.pdf"
        content_type = event.file.mime_type
        title = upload_title(caption, original_name)

    size = event.file.size or 0
    try:
        lectures.validate_upload(title, config.DEFAULT_SUBJECT, caller.id, original_name, content_type, size)
    except ValidationError as e:
        await event.respond(f"❌ {e}")
        return

    await event.respond("⏳ Uploading file...")
    data = await event.download_media(file=bytes)
    try:
        lecture = await run_db(
            lectures.create_lecture,
            title=title,
            subject=config.DEFAULT_SUBJECT,
            file_bytes=data,
            original_name=original_name,
            content_type=content_type,
            uploader_id=caller.id,
            description=caption,
        )
    except LectureHubError as e:
        logger.error(f"Upload of {original_name} failed: {e}")
        await event.respond(f"❌ Upload failed: {e}")
        return

    await event.respond(
        f"✅ Lecture \"{lecture.title}\" uploaded!\n\n"
        f"📖 Subject: {lecture.subject}\n"
        f"📄 File: {lecture.file_name}\n"
        f"💾 Size: {format_file_size(lecture.file_size)}",
        buttons=[[Button.inline("📚 View all lectures", data="view_lectures")]],
    )


# Handlers


@handler()
async def on_help(event, caller):
    await show_help(event)


@handler()
async def on_lectures(event, caller):
    await show_lectures(event)


@handler(require_admin=True)
async def on_admin(event, caller):
    await show_stats(event, detailed=True)


@handler(require_admin=True)
async def on_cleanup(event, caller):
    await event.respond("🧹 Checking files and removing broken records...")
    removed = await run_db(lectures.reconcile_orphans)
    remaining = await run_db(crud.count_lectures)
    await event.respond(
        f"✅ Cleanup finished!\n\n🗑️ Broken records removed: {removed}\n📚 Lectures left: {remaining}"
    )


@handler(require_admin=True)
async def on_make_admin(event, caller):
    target = event.pattern_match.group(1).strip()
    try:
        user = await run_db(crud.set_user_admin_status, target, True)
    except NotFoundError:
        await event.respond(f"⚠️ User {target} has not started the bot yet. Ask them to send /start first.")
        return
    logger.info(f"{caller.telegram_id} granted admin rights to {user.telegram_id}")
    await event.respond(f"✅ {user.username or user.telegram_id} is now an admin.")


@handler()
async def on_upload(event, caller):
    if not caller.is_admin:
        await event.respond("❌ Only admins can upload files.")
        return
    await ingest_upload(event, caller)


@handler()
async def on_text(event, caller):
    text = event.raw_text.strip()
    if text in (BTN_LECTURES, "📖 Photogrammetry"):
        await show_lectures(event)
    elif text == BTN_STATS:
        await show_stats(event)
    elif text == BTN_HELP:
        await show_help(event)
    elif text == BTN_ADMIN:
        if caller.is_admin:
            await show_stats(event, detailed=True)
        else:
            await event.respond(NO_RIGHTS)
    elif caller.is_admin:
        await event.respond("💡 To upload a lecture, send a PDF or an image with its title as the caption.")
    else:
        await event.respond("❌ Unknown command. Use /help to see what the bot can do.")


async def on_start(event):
    sender = await event.get_sender()
    try:
        user = await run_db(
            crud.get_or_create_user,
            str(event.sender_id),
            getattr(sender, "username", None),
            getattr(sender, "first_name", None),
            getattr(sender, "last_name", None),
        )
    except LectureHubError as e:
        logger.error(f"Could not register {event.sender_id}: {e}")
        await event.respond(GENERIC_ERROR)
        return
    await show_main_menu(event, user.is_admin)


async def on_callback(event):
    data = event.data.decode("utf-8", errors="ignore")
    caller = await resolve_caller(event)
    if caller is None:
        await event.answer("Please send /start first")
        return
    await event.answer()

    try:
        if data.startswith("download_"):
            await send_lecture(event, caller, data[len("download_"):])
        elif data.startswith("delete_"):
            if not caller.is_admin:
                await event.respond(NO_RIGHTS)
                return
            await delete_lecture(event, data[len("delete_"):])
        elif data == "main_menu":
            await show_main_menu(event, caller.is_admin)
        elif data == "view_lectures":
            await show_lectures(event)
        elif data == "view_stats":
            await show_stats(event)
        elif data == "admin_stats":
            if not caller.is_admin:
                await event.respond(NO_RIGHTS)
                return
            await show_stats(event, detailed=True)
        elif data == "help":
            await show_help(event)
        else:
            logger.debug(f"Ignoring unknown callback {data!r}")
    except Exception as e:
        logger.error(f"Error handling callback {data!r}: {e}", exc_info=True)
        await event.respond(GENERIC_ERROR)


def _is_plain_text(event) -> bool:
    return bool(event.raw_text) and not event.raw_text.startswith("/") and not event.file


def _is_upload(event) -> bool:
    return bool(event.photo or event.document)


async def _on_plain_text(event):
    if processed_updates.seen((event.chat_id, event.id)):
        return
    await on_text(event)


def register_handlers(bot: TelegramClient):
    """Attach all command, text, upload and callback handlers."""
    bot.add_event_handler(on_start, events.NewMessage(incoming=True, pattern=r"^/start(?:@\w+)?$"))
    bot.add_event_handler(on_help, events.NewMessage(incoming=True, pattern=r"^/help(?:@\w+)?$"))
    bot.add_event_handler(on_lectures, events.NewMessage(incoming=True, pattern=r"^/(?:lectures|subjects)(?:@\w+)?$"))
    bot.add_event_handler(on_admin, events.NewMessage(incoming=True, pattern=r"^/admin(?:@\w+)?$"))
    bot.add_event_handler(on_cleanup, events.NewMessage(incoming=True, pattern=r"^/cleanup(?:@\w+)?$"))
    bot.add_event_handler(on_make_admin, events.NewMessage(incoming=True, pattern=r"^/makeadmin(?:@\w+)?\s+(\S+)$"))
    bot.add_event_handler(on_upload, events.NewMessage(incoming=True, func=_is_upload))
    bot.add_event_handler(_on_plain_text, events.NewMessage(incoming=True, func=_is_plain_text))
    bot.add_event_handler(on_callback, events.CallbackQuery())


async def start_client():
    """Start the bot client and register handlers (once per process)."""
    global _handlers_registered, _client_started, _last_startup_error

    if not bot_configured():
        error_msg = (
            "TG_API_ID, TG_API_HASH and TELEGRAM_BOT_TOKEN must all be set. "
            "Skipping Telegram bot start."
        )
        logger.warning(error_msg)
        _last_startup_error = error_msg
        return

    bot = get_client()
    try:
        if not _handlers_registered:
            register_handlers(bot)
            _handlers_registered = True
            logger.info("Event handlers registered")

        await bot.start(bot_token=config.BOT_TOKEN)

        if not bot.is_connected():
            error_msg = "Telethon client failed to connect (is_connected() returned False)"
            logger.error(f"❌ {error_msg}")
            _last_startup_error = error_msg
            return

        _client_started = True
        _last_startup_error = None
        me = await bot.get_me()
        logger.info(f"✅ Bot started as @{me.username} (ID: {me.id})")
    except Exception as e:
        error_details = f"{type(e).__name__}: {e}"
        logger.error(f"❌ Failed to start Telegram bot: {error_details}", exc_info=True)
        _last_startup_error = error_details
        _client_started = False


async def stop_client():
    global _client_started
    if client is not None and client.is_connected():
        await client.disconnect()
    _client_started = False


def client_status() -> dict:
    connected = bool(_client_started and client is not None and client.is_connected())
    return {
        "configured": bot_configured(),
        "started": _client_started,
        "connected": connected,
        "last_error": _last_startup_error,
    }
