"""Storage example for TableFS"""

import asyncio
import io
from datetime import datetime

from tablefs import TableFS, TableFSOptions, WriteConfig


async def main():
    # Open a filesystem stored in the `files` table of a local database
    fs = await TableFS.open(TableFSOptions(path=".tablefs/demo.db", prefix="/demo/"))
    storage = fs.storage

    print("Writing files...")
    await storage.create_dir("documents")
    await storage.write("documents/readme.txt", "Hello, world!")
    await storage.write("documents/notes/monday.txt", "Some notes")
    await storage.write_stream("images/photo.jpg", io.BytesIO(b"\xff\xd8\xff binary data"))
    await storage.write("archive/2000.txt", "old", WriteConfig(timestamp=946684800))

    print("\nReading file...")
    print(f"  Content: {await storage.read('documents/readme.txt', encoding='utf-8')}")

    print("\nMetadata:")
    metadata = await storage.get_metadata("documents/readme.txt")
    print(f"  Size: {metadata.size} bytes")
    print(f"  Mimetype: {metadata.mimetype}")
    print(f"  Modified: {datetime.fromtimestamp(metadata.timestamp).isoformat()}")

    print("\nListing /documents:")
    for entry in await storage.list_contents("documents"):
        print(f"  {entry.type:4} {entry.path}")

    print("\nRenaming documents -> docs")
    await storage.rename("documents", "docs")
    for entry in await storage.list_contents("", recursive=True):
        print(f"  {entry.type:4} {entry.path}")

    print("\nDeleting docs/")
    await storage.delete_dir("docs")
    print(f"  docs/readme.txt exists: {await storage.has('docs/readme.txt')}")

    await fs.close()


if __name__ == "__main__":
    asyncio.run(main())
