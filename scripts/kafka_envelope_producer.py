"""Kafka 테스트 프로듀서 - Dynamic Job envelope 전송"""
import asyncio
import sys

from aiokafka import AIOKafkaProducer

from dynamic import MethodCall, create_dynamic_job


async def send_envelope(to: str, retries: int):
    envelope = create_dynamic_job(
        MethodCall.from_path("worker.job.newsletter:NewsletterJob.send", to, retries)
    )

    producer = AIOKafkaProducer(
        bootstrap_servers='localhost:9092',
        value_serializer=lambda v: v.encode('utf-8')
    )

    await producer.start()
    try:
        await producer.send_and_wait(
            "dynjobs-envelopes",
            envelope.to_json(),
            key=envelope.descriptor.target.encode("utf-8"),
        )
        print(f"Sent: target={envelope.descriptor.target}, queue={envelope.queue}")

    finally:
        await producer.stop()


if __name__ == "__main__":
    to = sys.argv[1] if len(sys.argv) > 1 else "a@b.com"
    asyncio.run(send_envelope(to, 3))
