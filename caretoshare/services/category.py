"""
services/category.py

File category inference from the filename extension.

Used both when tagging an upload and when validating the category filter
of the browse endpoint, so the two never drift apart.

"""

from caretoshare.models.file import FileCategory


CATEGORY_EXTENSIONS: dict[FileCategory, frozenset[str]] = {
    FileCategory.DOCUMENTS: frozenset({"pdf", "doc", "docx", "txt"}),
    FileCategory.PRESENTATIONS: frozenset({"ppt", "pptx"}),
    FileCategory.IMAGES: frozenset({"jpg", "jpeg", "png", "gif", "webp", "bmp", "svg"}),
    FileCategory.VIDEOS: frozenset({"mp4", "mov", "avi", "mkv", "wmv", "flv"}),
    FileCategory.ARCHIVES: frozenset({"zip", "rar", "7z", "tar", "gz"}),
}


def file_extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def category_from_filename(filename: str) -> FileCategory:
    ext = file_extension(filename)
    for category, extensions in CATEGORY_EXTENSIONS.items():
        if ext in extensions:
            return category
    return FileCategory.OTHER


def parse_category_filter(value: str | None) -> FileCategory | None:
    """'all' or empty means no filter; anything else must be a known category."""
    if not value or value == "all":
        return None
    try:
        return FileCategory(value)
    except ValueError:
        raise ValueError(f"unknown category '{value}'")
