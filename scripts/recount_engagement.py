"""

Engagement counter reconciliation script.

- recomputes files.like_count / files.comment_count from the
  file_likes / comments rows
- recomputes classes.file_count from class-scoped files
- safe to run repeatedly; only rows whose cached value drifted are written

Usage
- activate the virtualenv
- (.venv) ~\backend~$ python -m scripts.recount_engagement

"""

import logging

from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select

from caretoshare.db.session import SessionLocal
from caretoshare.models.classroom import Class
from caretoshare.models.file import File
from caretoshare.services.engagement import count_comments, count_likes
from caretoshare.services.files import refresh_class_file_count

logger = logging.getLogger("scripts.recount_engagement")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    db = SessionLocal()
    try:
        fixed = 0
        for file in db.scalars(select(File)).unique().all():
            likes = count_likes(db, file.id)
            comments = count_comments(db, file.id)
            if file.like_count != likes or file.comment_count != comments:
                logger.info(
                    "file %s: likes %s -> %s, comments %s -> %s",
                    file.id, file.like_count, likes, file.comment_count, comments,
                )
                file.like_count = likes
                file.comment_count = comments
                fixed += 1

        class_ids = db.scalars(select(Class.id)).all()
        for class_id in class_ids:
            refresh_class_file_count(db, class_id)

        db.commit()
        logger.info("reconciled %s file(s), refreshed %s class(es)", fixed, len(class_ids))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
