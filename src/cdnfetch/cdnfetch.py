import argparse, sys

from cdnfetch.config import DECRYPT_WORKERS
from cdnfetch.download import download_file, list_files, play_file
from cdnfetch.errors import RetrievalError
from cdnfetch.sink import PlaybackSession
from cdnfetch.utils import format_file_size, open_with_default_app


def list_command(args):
    try:
        files = list_files()
    except RetrievalError as e:
        print(f"[!] {e.user_message} ({e})")
        return 1

    for f in files:
        date = f.upload_date.strftime("%Y-%m-%d %H:%M") if f.upload_date else "-"
        print(f"{f.name:<40} {f.category:<9} {format_file_size(f.size):>10}  {date}")
    return 0


def download_command(args):
    return 0 if download_file(args.name, args.dir, workers=args.workers) else 1


def play_command(args):
    with PlaybackSession() as session:
        handle = play_file(args.name, session, workers=args.workers)
        if handle is None:
            return 1
        try:
            open_with_default_app(handle.path)
        except RuntimeError as e:
            print(f"[!] Cannot open a player: {e}")
            return 1
        input("Press Enter to stop playback...")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Encrypted CDN file client")
    subparsers = parser.add_subparsers(dest="command")

    # List
    subparsers.add_parser("list", help="List files available on the server")

    # Download
    download = subparsers.add_parser("download", help="Download and decrypt a file")
    download.add_argument("name", help="File name as shown by 'list'")
    download.add_argument("--dir", default=".", help="Destination folder (default: current directory)")
    download.add_argument("--workers", type=int, default=DECRYPT_WORKERS, help="Parallel chunk decryptions")

    # Play
    play = subparsers.add_parser("play", help="Decrypt a media file and open it in the default player")
    play.add_argument("name", help="File name as shown by 'list'")
    play.add_argument("--workers", type=int, default=DECRYPT_WORKERS, help="Parallel chunk decryptions")

    args = parser.parse_args(argv)

    if args.command == "list":
        return list_command(args)
    elif args.command == "download":
        return download_command(args)
    elif args.command == "play":
        return play_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
