"""
Quick sanity run: a spike pattern against a local target.
Start the API first (`tempest serve`), then: python examples/spike_self_test.py
"""
import asyncio
import os

from tempest import LoadTestController, TestConfig

TARGET = os.getenv("TEMPEST_TARGET", "http://127.0.0.1:3000/api/target")


async def main():
    config = TestConfig(
        target_url=TARGET,
        start_rps=2,
        max_rps=20,
        duration=12,
        worker_count=4,
        attack_pattern="spike",
    )
    controller = LoadTestController(
        request_timeout_s=float(os.getenv("TEMPEST_REQUEST_TIMEOUT_S", "10"))
    )
    controller.start(config)
    while controller.get_status().is_running:
        await asyncio.sleep(1.0)
    await controller.shutdown()

    status = controller.get_status()
    print("\nStatus:", status.total_requests, "issued,", status.failed_requests, "failed")
    for line in status.recent_logs[:5]:
        print(line)

if __name__ == "__main__":
    asyncio.run(main())
