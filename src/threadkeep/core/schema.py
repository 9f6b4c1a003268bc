"""SQLite schema: base table, tag catalog, media, and the FTS5 search index.

The FTS5 table uses external content from ``bookmarks_fts_content``. Triggers
on that shadow table keep the index in step with inserts, updates and
deletes; deleting a bookmark cascades to its shadow row, which fires the
delete trigger.
"""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS bookmarks (
    id TEXT PRIMARY KEY,
    post_url TEXT UNIQUE NOT NULL,
    content TEXT NOT NULL,
    note_text TEXT,
    posted_at INTEGER NOT NULL,
    imported_at INTEGER NOT NULL,
    author_handle TEXT NOT NULL,
    author_name TEXT NOT NULL,
    author_profile_url TEXT,
    author_profile_image TEXT,
    comments TEXT,
    is_favorite INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL COLLATE NOCASE
);

CREATE TABLE IF NOT EXISTS bookmark_tags (
    bookmark_id TEXT NOT NULL,
    tag_id INTEGER NOT NULL,
    PRIMARY KEY (bookmark_id, tag_id),
    FOREIGN KEY (bookmark_id) REFERENCES bookmarks(id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS media (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    bookmark_id TEXT NOT NULL,
    url TEXT NOT NULL,
    media_type TEXT NOT NULL,
    FOREIGN KEY (bookmark_id) REFERENCES bookmarks(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS bookmarks_fts_content (
    rowid INTEGER PRIMARY KEY,
    bookmark_id TEXT NOT NULL UNIQUE,
    content TEXT,
    note_text TEXT,
    author_handle TEXT,
    author_name TEXT,
    comments TEXT,
    tags_text TEXT,
    FOREIGN KEY (bookmark_id) REFERENCES bookmarks(id) ON DELETE CASCADE
);

CREATE VIRTUAL TABLE IF NOT EXISTS bookmarks_fts USING fts5(
    content,
    note_text,
    author_handle,
    author_name,
    comments,
    tags_text,
    content='bookmarks_fts_content',
    content_rowid='rowid',
    tokenize='porter unicode61'
);

CREATE INDEX IF NOT EXISTS idx_bookmarks_posted_at ON bookmarks(posted_at DESC);
CREATE INDEX IF NOT EXISTS idx_bookmarks_author_handle ON bookmarks(author_handle);
CREATE INDEX IF NOT EXISTS idx_bookmarks_imported_at ON bookmarks(imported_at DESC);
CREATE INDEX IF NOT EXISTS idx_bookmarks_favorite ON bookmarks(is_favorite) WHERE is_favorite = 1;
CREATE INDEX IF NOT EXISTS idx_bookmark_tags_tag ON bookmark_tags(tag_id);
CREATE INDEX IF NOT EXISTS idx_media_bookmark ON media(bookmark_id);

CREATE TRIGGER IF NOT EXISTS bookmarks_fts_insert
AFTER INSERT ON bookmarks_fts_content BEGIN
    INSERT INTO bookmarks_fts(rowid, content, note_text, author_handle, author_name, comments, tags_text)
    VALUES (new.rowid, new.content, new.note_text, new.author_handle, new.author_name, new.comments, new.tags_text);
END;

CREATE TRIGGER IF NOT EXISTS bookmarks_fts_delete
AFTER DELETE ON bookmarks_fts_content BEGIN
    INSERT INTO bookmarks_fts(bookmarks_fts, rowid, content, note_text, author_handle, author_name, comments, tags_text)
    VALUES ('delete', old.rowid, old.content, old.note_text, old.author_handle, old.author_name, old.comments, old.tags_text);
END;

CREATE TRIGGER IF NOT EXISTS bookmarks_fts_update
AFTER UPDATE ON bookmarks_fts_content BEGIN
    INSERT INTO bookmarks_fts(bookmarks_fts, rowid, content, note_text, author_handle, author_name, comments, tags_text)
    VALUES ('delete', old.rowid, old.content, old.note_text, old.author_handle, old.author_name, old.comments, old.tags_text);
    INSERT INTO bookmarks_fts(rowid, content, note_text, author_handle, author_name, comments, tags_text)
    VALUES (new.rowid, new.content, new.note_text, new.author_handle, new.author_name, new.comments, new.tags_text);
END;
"""

# journal_mode is skipped for in-memory databases, where WAL is not available.
FILE_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
)

CONNECTION_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA temp_store = MEMORY",
    "PRAGMA cache_size = -64000",
)
