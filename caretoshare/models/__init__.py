from caretoshare.models.user import User  # noqa: F401
from caretoshare.models.classroom import Class, ClassMembership, JoinRequest, ClassVisibility, MemberRole  # noqa: F401
from caretoshare.models.file import File, FileLike, Comment, FileVisibility, FileCategory  # noqa: F401
