"""BlobStore Command Line App"""
import logging
import sys
from argparse import ArgumentParser
from blobstore import BlobStoreFactory
from blobstore import blobstore_config
from blobstore import objectcodec
from blobstore.fileblobstore import FileBlobStore
from blobstore.fileblobstore_exceptions import BlobStoreError
from blobstore.objectcodec import ObjectKind

LOGGING_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class BlobStoreParser:
    """Class to set up parsing arguments via argparse."""

    def __init__(self):
        """Initialize the argparse 'parser'."""

        program_name = "blobstore"
        description = (
            "Command line tool to initialize a BlobStore, hash and store file content"
            + " as blob objects and print stored objects by their content address."
        )

        self.parser = ArgumentParser(
            prog=program_name,
            description=description,
        )

        # Add optional arguments
        self.parser.add_argument(
            "-store_path",
            dest="store_path",
            default=blobstore_config.STORE_PATH,
            help=f"Path of the BlobStore (default: {blobstore_config.STORE_PATH})",
        )
        self.parser.add_argument(
            "-loglevel",
            dest="logging_level",
            type=str.upper,
            choices=LOGGING_LEVELS,
            help="Set logging level for the client (default: only 'error:' lines)",
        )

        subparsers = self.parser.add_subparsers(dest="command", metavar="command")
        subparsers.required = True

        subparsers.add_parser("init", help="Create an empty BlobStore")

        hash_object = subparsers.add_parser(
            "hash-object", help="Compute the address of a file as a blob"
        )
        hash_object.add_argument(
            "-w",
            dest="write",
            action="store_true",
            help="Also write the blob into the BlobStore",
        )
        hash_object.add_argument("path", help="Path of the file to hash")

        cat_file = subparsers.add_parser(
            "cat-file", help="Print a stored object by its address"
        )
        cat_file_mode = cat_file.add_mutually_exclusive_group(required=True)
        cat_file_mode.add_argument(
            "-p",
            dest="pretty_print",
            action="store_true",
            help="Write the object's payload to standard output",
        )
        cat_file_mode.add_argument(
            "-t",
            dest="show_kind",
            action="store_true",
            help="Print the object's kind",
        )
        cat_file_mode.add_argument(
            "-s",
            dest="show_size",
            action="store_true",
            help="Print the object's payload size",
        )
        cat_file.add_argument("address", help="Content address of the object")

    def get_parser_args(self, args=None):
        """Get command line arguments."""
        return self.parser.parse_args(args)

    @staticmethod
    def get_logging_level(args):
        """Return the logging level for parsed `args`. Without '-loglevel' the store's
        own log records are silenced, failures are reported once by the client."""
        logging_level = getattr(args, "logging_level")
        if logging_level is None:
            return logging.CRITICAL + 1
        return logging.getLevelName(logging_level)


class BlobStoreClient:
    """Create a BlobStore to use through the command line."""

    def __init__(self, store_path):
        """The BlobStore for `store_path` is only built when a command needs it, so
        commands that never touch the store do not depend on its 'blobstore.yaml'.

        :param str store_path: Path of the store root directory.
        """
        self.store_path = store_path
        self._blobstore = None

    @property
    def blobstore(self):
        """Get the BlobStore, configured from its 'blobstore.yaml' when the store has one."""
        if self._blobstore is None:
            factory = BlobStoreFactory()

            # Get BlobStore from factory
            module_name = "blobstore.fileblobstore"
            class_name = "FileBlobStore"

            properties = FileBlobStore.load_properties(self.store_path)
            self._blobstore = factory.get_blobstore(module_name, class_name, properties)
            logging.debug("BlobStoreClient - BlobStore ready at: %s", self.store_path)
        return self._blobstore

    def init(self):
        """Create the store and report where."""
        self.blobstore.initialize()
        print(f"Initialized empty store in {self.blobstore.root}")

    def hash_object(self, path, write=False):
        """Print the blob address of the file at `path`, storing it when `write` is set.

        :param str path: Path of the file; its bytes are taken as they are.
        :param bool write: Whether to store the blob.
        """
        with open(path, "rb") as input_file:
            payload = input_file.read()
        if write:
            address = self.blobstore.put(ObjectKind.BLOB, payload)
        else:
            address = objectcodec.address_of(
                objectcodec.encode(ObjectKind.BLOB, payload)
            )
        print(address)

    def cat_file(self, address, show_kind=False, show_size=False):
        """Write the payload of the object at `address` to standard output unmodified,
        or its kind/size when requested.

        :param str address: Content address of the object.
        :param bool show_kind: Print the kind instead of the payload.
        :param bool show_size: Print the payload size instead of the payload.
        """
        stored_object = self.blobstore.get(address)
        if show_kind:
            print(stored_object.kind.value)
        elif show_size:
            print(stored_object.size)
        else:
            sys.stdout.flush()
            sys.stdout.buffer.write(stored_object.payload)
            sys.stdout.buffer.flush()


def main():
    """Entry point of the BlobStore client. Returns the process exit status."""

    parser = BlobStoreParser()
    args = parser.get_parser_args()

    # Logs go to stderr so stdout stays binary-clean
    logging.basicConfig(
        level=parser.get_logging_level(args),
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    command = getattr(args, "command")
    try:
        blobstore_c = BlobStoreClient(getattr(args, "store_path"))
        if command == "init":
            blobstore_c.init()
        elif command == "hash-object":
            blobstore_c.hash_object(getattr(args, "path"), getattr(args, "write"))
        elif command == "cat-file":
            blobstore_c.cat_file(
                getattr(args, "address"),
                show_kind=getattr(args, "show_kind"),
                show_size=getattr(args, "show_size"),
            )
    except BlobStoreError as err:
        print(f"error: {err}", file=sys.stderr)
        return 1
    except OSError as err:
        print(f"error: {err}", file=sys.stderr)
        return 1
    except (ValueError, TypeError) as err:
        # Raised by property validation of a store's 'blobstore.yaml'
        print(f"error: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
