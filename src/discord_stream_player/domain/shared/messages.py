"""Centralized message constants for error messages, log templates, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"
    SNOWFLAKE_TOO_LARGE = "Discord snowflake ID exceeds maximum value (2^64)"

    # Settings Validation Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"

    # Resolution Errors
    TRACK_NOT_FOUND = "No track found for '{query}'"
    TRACK_HAS_NO_LOCATOR = "Top result for '{query}' has no playable locator"

    # Pipeline Errors
    TOOL_MISSING = "Required executable '{tool}' was not found"
    FETCH_NONZERO_EXIT = "{tool} exited with code {code}: {stderr}"
    FETCH_EMPTY_URL = "{tool} returned empty url"
    FETCH_EMPTY_FILE = "{tool} did not produce a media file at {path}"
    TRANSCODE_NONZERO_EXIT = "{tool} exited with code {code}"
    TRANSCODE_SPAWN_FAILED = "Could not start {tool}: {error}"

    # Voice / Session Errors
    CONNECTION_TIMEOUT = "Voice connection to channel {channel_id} timed out after {timeout}s"
    VOICE_CONNECT_FAILED = "Could not connect to voice channel {channel_id}: {error}"
    CHANNEL_NOT_VOICE = "Channel {channel_id} is not a voice channel"
    GUILD_NOT_FOUND = "Guild {guild_id} not found"
    NOT_CONNECTED = "No active playback session for guild {guild_id}"
    NOTHING_PLAYING = "Nothing is playing in guild {guild_id}"
    NOT_IN_VOICE = "User is not in a voice channel"

    # Authentication/Security Errors
    DISCORD_TOKEN_REQUIRED = "DISCORD_TOKEN environment variable is required"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."
    CONTAINER_NOT_FOUND = "Container not found on bot instance"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting.
    """

    # Voice Operations
    VOICE_CONNECTED = "Connected to voice channel %s in %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_MOVED = "Moved to voice channel %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s after %ss"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s"
    VOICE_CLIENT_ERROR = "Client error connecting: %r"
    VOICE_PARTIAL_RELEASED = "Released partial voice connection in guild %s"
    VOICE_PARTIAL_RELEASE_FAILED = "Failed releasing partial voice connection in guild %s: %r"
    VOICE_NOT_CONNECTED = "Not connected to voice in guild %s"
    VOICE_EXTERNAL_DISCONNECT = "Bot was disconnected from voice in guild %s, tearing down"

    # Sink Operations
    SINK_PLAY = "Sink playing stream in guild %s (token=%s)"
    SINK_FINISHED = "Sink finished in guild %s (token=%s, error=%s)"
    SINK_EVENT_DISPATCH_FAILED = "Failed to dispatch sink event for guild %s: %r"
    SINK_STOP_FAILED = "Failed to stop voice client in guild %s: %r"
    SINK_NOT_SUBSCRIBED = "Sink event in guild %s has no subscriber"

    # Pipeline Operations
    PIPELINE_FETCH_STARTED = "Fetching %s with %s (strategy=%s) for guild %s"
    PIPELINE_FETCH_RESOLVED = "Fetch stage resolved %s for guild %s"
    PIPELINE_FETCH_STDERR = "[%s] %s"
    PIPELINE_TRANSCODE_STARTED = "Transcoder started (pid=%s) for guild %s"
    PIPELINE_TRANSCODE_EXIT_PENDING = "Transcoder pid %s still running after end of stream"
    PIPELINE_SPAWN_ABANDONED = "%s failed to start after cancellation: %r"
    PIPELINE_STOPPED = "Pipeline stopped for guild %s"
    PIPELINE_PROCESS_CLEANUP_ERROR = "Error cleaning up process %s: %r"
    PIPELINE_TEMPFILE_REMOVED = "Removed temp file %s"
    PIPELINE_TEMPFILE_CLEANUP_ERROR = "Error removing temp file %s: %r"
    PIPELINE_START_ABORTED = "Pipeline start aborted for guild %s, releasing resources"

    # Playback Operations
    PLAYBACK_ENQUEUED = "Enqueued '%s' at position %s in guild %s"
    PLAYBACK_LOADING = "Loading '%s' in guild %s (generation=%s)"
    PLAYBACK_STARTED = "Started playing '%s' in guild %s"
    PLAYBACK_FINISHED = "Finished '%s' in guild %s"
    PLAYBACK_SINK_ERROR = "Sink reported error for '%s' in guild %s: %s"
    PLAYBACK_FAILED = "Failed to play '%s' in guild %s: %s"
    PLAYBACK_STALE_LOAD = "Discarding stale load (generation=%s) in guild %s"
    PLAYBACK_STALE_EVENT = "Ignoring stale sink event (token=%s, current=%s) in guild %s"
    PLAYBACK_SKIPPED = "Skipped '%s' in guild %s"
    PLAYBACK_STOPPED = "Stopped playback in guild %s (%s queued tracks cleared)"
    PLAYBACK_QUEUE_EXHAUSTED = "Queue exhausted in guild %s"
    PLAYBACK_ABANDONED = "Giving up in guild %s after %s consecutive failures (%s tracks dropped)"
    PLAYBACK_LOADER_ERROR = "Unexpected error while loading in guild %s"
    PLAYBACK_SINK_PLAY_FAILED = "Sink refused stream in guild %s: %r"

    # Session Operations
    SESSION_CREATED = "Created playback session for guild %s"
    SESSION_REMOVED = "Removed playback session for guild %s"
    SESSION_LEFT = "Left voice and destroyed session in guild %s"

    # Resolution/Search
    RESOLVER_METADATA_FAILED = "Metadata lookup failed for %s (%r), using query as title"
    RESOLVER_SEARCH_FAILED = "Search failed for %r"
    RESOLVER_RESOLVED = "Resolved %r to '%s'"

    # Health Server
    HEALTH_SERVER_STARTED = "Health server listening on %s:%s"
    HEALTH_SERVER_STOPPED = "Health server stopped"
    HEALTH_SERVER_START_FAILED = "Failed to start health server: %s"

    # Notifications
    NOTIFY_FAILED = "Failed to send notification to channel %s: %r"

    # Application Lifecycle
    BOT_STARTING = "Starting Discord Stream Player (%s strategy, health check on %s:%s)"
    BOT_TOOL_MISSING = "%s; tracks will fail until it is installed"
    BOT_TOOL_FOUND = "Using %s at %s"
    LOGGING_CONFIG_FALLBACK = "Could not load %s, falling back to basic config"
    BOT_SETUP = "Setting up bot..."
    BOT_CONTAINER_INITIALIZED = "Container initialized successfully"
    BOT_CONTAINER_INIT_FAILED = "Failed to initialize container: %s"
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_STARTING_RUN = "Starting bot..."
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down..."
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown timed out after %ss"
    BOT_CONTAINER_SHUTDOWN = "Container shutdown complete"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error during container shutdown: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_READY = "Bot ready as %s (%s)"
    BOT_CONNECTED_GUILDS = "Connected to %s guilds"
    BOT_VOICE_DISCONNECT_FAILED = "Failed to disconnect voice client during shutdown: %r"

    # Bot Cog Management
    BOT_COG_LOADED = "Loaded cog: %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_COGS_LOADED_SUMMARY = "Cogs loaded: %s success, %s failed"

    # Bot Command Sync
    BOT_SYNCED_GUILD = "Synced %s commands to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %s commands globally"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync commands globally: %s"

    # Bot Error Handling
    BOT_COMMAND_ERROR = "Command error in '%s': %s"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"


class DiscordUIMessages:
    """User-facing Discord messages and responses.

    These strings are shown directly to users. Keep them concise.
    """

    # Help
    HELP = (
        "**Commands**\n"
        "- `{prefix}join` bring the bot into your voice channel\n"
        "- `{prefix}play <youtube link or search>` play a track from YouTube\n"
        "- `{prefix}skip` skip the current track\n"
        "- `{prefix}stop` stop and clear the queue\n"
        "- `{prefix}queue` show the queue\n"
        "- `{prefix}leave` leave the voice channel"
    )

    # Action Messages
    ACTION_JOINED = "✅ Joined the voice channel."
    ACTION_LEFT = "👋 Left the voice channel."
    ACTION_NOW_STARTING = "🎵 Now starting: **{title}**"
    ACTION_ENQUEUED = "➕ Added to queue: **{title}** (position {position})"
    ACTION_SKIPPED = "⏭️ Skipped **{title}**."
    ACTION_STOPPED = "⏹️ Stopped playback and cleared the queue."

    # Queue
    QUEUE_NOW_PLAYING = "Now playing: **{title}**"
    QUEUE_LOADING = "Loading: **{title}**"
    QUEUE_ENTRY = "{index}. {title} (req: {requested_by})"
    QUEUE_MORE = "...and {count} more"
    QUEUE_EMPTY = "Queue is empty."

    # Notifications
    NOTIFY_NOW_PLAYING = "🎶 Now playing: **{title}** (req: {requested_by})"
    NOTIFY_TRACK_FAILED = "⚠️ Couldn't play **{title}**, skipping. ({reason})"
    NOTIFY_GIVING_UP = (
        "🛑 {failures} tracks in a row failed to play. Cleared {dropped} remaining tracks."
    )
    NOTIFY_QUEUE_FINISHED = "✅ Queue finished."

    # Usage
    USAGE_PLAY = "Usage: `{prefix}play <youtube link or search>`"

    # Error Messages
    ERROR_NOT_IN_VOICE = "You need to be in a voice channel first."
    ERROR_NOTHING_PLAYING = "Nothing is playing."
    ERROR_NOT_CONNECTED = "I'm not in a voice channel."
    ERROR_TRACK_NOT_FOUND = "Couldn't find a track for: {query}"
    ERROR_TOOL_MISSING = "The server can't find `{tool}`. Ask the bot owner to install it."
    ERROR_CONNECTION_TIMEOUT = "Timed out joining your voice channel. Try again."
    ERROR_COULD_NOT_JOIN_VOICE = "I couldn't join your voice channel."
    ERROR_SERVER_ONLY = "This command can only be used in a server."
    ERROR_OCCURRED = "❌ An error occurred: {error}"
