"""뉴스레터 발송 잡 (newsletter 큐)"""

import logging

from dynamic import display_name, queue
from worker.job import registry

logger = logging.getLogger(__name__)


@registry.register
@queue("newsletter")
class NewsletterJob:
    """뉴스레터 발송"""

    # (메서드, 인자) 실행 기록
    sent: list[tuple[str, tuple]] = []

    @display_name("Daily digest")
    def send_digest(self) -> int:
        """구독자에게 일간 다이제스트 발송"""
        NewsletterJob.sent.append(("send_digest", ()))
        logger.info("Daily digest sent")
        return len(NewsletterJob.sent)

    @display_name("Send newsletter to {0}")
    def send(self, to: str, retries: int) -> str:
        NewsletterJob.sent.append(("send", (to, retries)))
        logger.info(f"Newsletter sent: to={to}, retries={retries}")
        return to
