"""Bildirim gönderimi - Amazon SES üzerinden e-posta.

Gönderim tekrar denenmez; hata loglanır ve çağırana NotificationDeliveryError
olarak iletilir.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from stockledger.models.inventory import NotificationPayload
from stockledger.services.exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)


class SesNotifier:
    """Hazır payload'u SES ile tek alıcıya gönderir."""

    def __init__(
        self,
        sender: str,
        region_name: str = "us-west-2",
        ses_client: Optional[Any] = None,
    ):
        if not sender:
            raise ValueError("Gönderici adresi zorunlu")
        self.sender = sender
        # dependency injection destekli
        self.ses = ses_client or boto3.client("ses", region_name=region_name)

    def deliver(self, payload: NotificationPayload, recipient: str) -> str:
        """Payload'u gönderir ve SES MessageId döndürür."""
        if not recipient:
            raise NotificationDeliveryError(recipient or "", "Alıcı adresi boş")
        try:
            response = self.ses.send_email(
                Source=self.sender,
                Destination={"ToAddresses": [recipient]},
                Message={
                    "Subject": {"Data": payload.subject, "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": payload.html_body, "Charset": "UTF-8"},
                        "Text": {"Data": payload.text_body, "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Bildirim gönderim hatası [%s] %s: %s", payload.kind.value, recipient, e)
            raise NotificationDeliveryError(recipient, str(e))

        message_id = response.get("MessageId", "")
        logger.info("Bildirim gönderildi [%s] %s: %s", payload.kind.value, recipient, message_id)
        return message_id
