#!/usr/bin/env python3
"""
Basic usage examples for dstore.

This script demonstrates the most common operations:
- Logging in and creating a pod
- Uploading and downloading files with progress
- Sharing a pod
- Error handling

Start a local emulator first:

    dstore-gateway --user alice:secret --api-key demo-key

then run:

    DSTORE_DFS_ENDPOINT=http://127.0.0.1:9090 DSTORE_DFS_USERNAME=alice \\
    DSTORE_DFS_PASSWORD=secret python examples/basic_usage.py
"""

import os
import tempfile
from pathlib import Path

from dstore import (
    AuthenticationFailed,
    ConfigurationError,
    LighthouseClient,
    PodError,
    RecordingProgressReporter,
    RichProgressReporter,
    StorageAPI,
)


def main():
    """Demonstrate basic dstore operations."""

    try:
        api = StorageAPI()
        pods = api.pods
        print(f"Logged in to {pods.endpoint} as {pods.username}")
    except ConfigurationError as e:
        print(f"Configuration missing: {e}")
        return
    except AuthenticationFailed as e:
        print(f"Login rejected: {e.message}")
        return

    with api:
        # 1. Create a pod, or reuse it if it exists
        pod = "demo-pod"
        try:
            api.create_pod(pod)
            print(f"Created pod '{pod}'")
        except PodError as e:
            print(f"Pod '{pod}' not created ({e.message}), opening it instead")
            api.open_pod(pod)

        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "hello.bin"
            source.write_bytes(os.urandom(2 * 1024 * 1024))

            # 2. Upload with a terminal progress bar
            with RichProgressReporter() as reporter:
                result = api.upload_file(source, pod, "/docs", reporter=reporter)
            print(f"Uploaded {result.name} as {result.content_id} ({result.size} bytes)")

            # 3. Download, recording every progress event
            recorder = RecordingProgressReporter()
            target = Path(tmp) / "copy.bin"
            download = api.download_file(pod, "/docs/hello.bin", target, reporter=recorder)
            events = recorder.all_events
            print(
                f"Downloaded {download.size} bytes in {len(events)} events, "
                f"last phase: {events[-1].phase.value}"
            )
            assert target.read_bytes() == source.read_bytes()

        # 4. Share the pod
        reference = api.share_pod(pod)
        print(f"Share reference: {reference}")

    # 5. Content-addressed upload, if a Lighthouse key is available
    if os.getenv("LIGHTHOUSE_API_KEY"):
        with LighthouseClient() as lighthouse, tempfile.NamedTemporaryFile(suffix=".txt") as f:
            f.write(b"hello lighthouse")
            f.flush()
            result = lighthouse.upload_file(f.name)
            print(f"CID: {result.content_id}")
            print(lighthouse.get_file_info(result.content_id))


if __name__ == "__main__":
    main()
