# Overview: Where generated invoice PDFs live; S3 with signed URLs, or local disk behind a raw download route.

from __future__ import annotations

import logging
import os
from urllib.parse import unquote, urlparse

import boto3


logger = logging.getLogger(__name__)


def raw_pdf_path(invoice_id: int) -> str:
    return f"/api/invoices/{invoice_id}/pdf/raw"


class LocalInvoiceStorage:
    """
    Writes invoice-<number>-<id>.pdf under `directory`.

    The stored location is the relative raw-download route; callers turn it
    into an absolute URL against the request host.
    """
    uses_s3 = False

    def __init__(self, directory: str):
        self.directory = directory

    def path_for(self, invoice) -> str:
        return os.path.join(self.directory, f"invoice-{invoice.invoice_number}-{invoice.id}.pdf")

    def save(self, invoice, data: bytes) -> str:
        os.makedirs(self.directory, exist_ok=True)
        path = self.path_for(invoice)
        with open(path, "wb") as fh:
            fh.write(data)
        logger.info("Wrote invoice PDF %s (%d bytes)", path, len(data))
        return raw_pdf_path(invoice.id)

    def url_for(self, location: str, base_url: str) -> str:
        return base_url.rstrip("/") + location

    def read(self, invoice) -> bytes | None:
        path = self.path_for(invoice)
        if not os.path.isfile(path):
            return None
        with open(path, "rb") as fh:
            return fh.read()


class S3InvoiceStorage:
    """
    Private objects under invoices/ in one bucket.

    The stored location is the object URL; every request gets a fresh
    presigned GET valid for `url_ttl` seconds, served inline as a PDF.
    """
    uses_s3 = True

    def __init__(
        self,
        *,
        bucket: str,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        url_ttl: int = 600,
        client=None,
    ):
        self.bucket = bucket
        self.region = region
        self.url_ttl = url_ttl
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    def key_for(self, invoice) -> str:
        return f"invoices/invoice-{invoice.invoice_number}.pdf"

    def save(self, invoice, data: bytes) -> str:
        key = self.key_for(invoice)
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType="application/pdf",
        )
        logger.info("Uploaded invoice PDF s3://%s/%s (%d bytes)", self.bucket, key, len(data))
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def url_for(self, location: str, base_url: str | None = None) -> str:
        key = unquote(urlparse(location).path.lstrip("/"))
        return self.client.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "ResponseContentDisposition": "inline",
                "ResponseContentType": "application/pdf",
            },
            ExpiresIn=self.url_ttl,
        )

    def read(self, invoice) -> bytes | None:
        return None


def build_invoice_storage(config) -> LocalInvoiceStorage | S3InvoiceStorage:
    """S3 when bucket, region and both keys are configured; local disk otherwise."""
    if all(config.get(k) for k in ("S3_BUCKET", "S3_REGION", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")):
        return S3InvoiceStorage(
            bucket=config["S3_BUCKET"],
            region=config["S3_REGION"],
            access_key_id=config["S3_ACCESS_KEY_ID"],
            secret_access_key=config["S3_SECRET_ACCESS_KEY"],
            url_ttl=config.get("S3_SIGNED_URL_TTL", 600),
        )
    return LocalInvoiceStorage(config["INVOICE_STORAGE_DIR"])
