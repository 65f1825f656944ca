#!/usr/bin/env python3
"""Basic usage example for the BetterE2B SDK."""

import asyncio
import logging

from bettere2b import Sandbox, StreamCallbacks

PYTHON_CODE = """
for i in range(3):
    print(f"tick {i}")
"""


async def main():
    logging.basicConfig(level=logging.INFO)

    # Server URL and API key come from BETTERE2B_SERVER_URL / BETTERE2B_API_KEY
    sandbox = await Sandbox.create(name="Example", runtime="python")
    print(f"Created sandbox: {sandbox.sandbox_id}")
    print(f"Host: {sandbox.get_host()}")

    try:
        # Run code and wait for the result
        await sandbox.run_code("x = 1")
        result = await sandbox.run_code("x += 1; x")
        print(f"Result: {result.text}")

        # Stream output as it is produced
        await sandbox.stream_code(
            PYTHON_CODE,
            callbacks=StreamCallbacks(
                on_start=lambda payload: print("Execution started"),
                on_output=lambda data: print(f"Output: {data}", end=""),
                on_error=lambda error: print(f"Error: {error}"),
                on_end=lambda payload: print(f"Completed in {payload.get('executionTime')} ms"),
            ),
        )

        # Write a file and read it back
        await sandbox.write_file("/test.txt", "Hello from BetterE2B!")
        content = await sandbox.read_file("/test.txt")
        print(f"File content: {content}")

        for info in await sandbox.list_files("/"):
            print(f"  {info.name}{'/' if info.is_directory else ''}")

        await sandbox.install("requests")

    finally:
        await sandbox.kill()
        await sandbox.close()
        print("Sandbox killed")


if __name__ == "__main__":
    asyncio.run(main())
