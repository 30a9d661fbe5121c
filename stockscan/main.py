"""Main entry point for the inventory scan station."""
import argparse
import json
import logging
import os
import signal
import sys

from stockscan.config.settings import HardwareConfig, PathConfig, StoreConfig
from stockscan.core.camera_manager import CameraManager
from stockscan.core.decoder import decode_frame, decode_still_image
from stockscan.core.errors import DecodeNotFound, LabelRenderError
from stockscan.core.label_renderer import render_barcode_image
from stockscan.core.models import Product, TransactionType
from stockscan.core.reports import dashboard_data
from stockscan.core.session import LoggingPresenter, ScanSessionController
from stockscan.core.stream import BarcodeStream
from stockscan.store.memory import MemoryStore
from stockscan.utils.logging_config import setup_logging

DEMO_PRODUCTS = (
    Product(code="5000112576009", name="Test Product - Coca Cola",
            brand="Coca-Cola", category="Beverages"),
    Product(code="4006809087906", name="Test Product - Nivea Cream",
            brand="Nivea", category="Personal Care"),
    Product(code="8076809514118", name="Test Product - Nutella",
            brand="Ferrero", category="Food"),
)

ACTION_COMMANDS = {
    "r": TransactionType.RECEIVE,
    "receive": TransactionType.RECEIVE,
    "x": TransactionType.REMOVE,
    "remove": TransactionType.REMOVE,
    "c": TransactionType.CONSULT,
    "consult": TransactionType.CONSULT,
}

HELP_TEXT = """Commands:
  <code>          look up a barcode typed by hand
  r | x | c       receive / remove / consult the open product
  + | -           change the quantity by one
  q <n>           set the quantity
  n               close the product and scan the next one
  img <path>      decode a barcode from an image file
  retry           retry the camera
  exit            stop the station"""


def create_store(backend=None):
    """Build the configured store. The in-memory store starts with the demo catalog."""
    backend = backend or StoreConfig.BACKEND
    if backend == "firestore":
        from stockscan.network.firestore_store import FirestoreStore
        return FirestoreStore()
    if backend == "memory":
        return MemoryStore(products=DEMO_PRODUCTS)
    raise ValueError(f"Unknown store backend: {backend}")


def create_presenter(use_hardware=None):
    use_hardware = HardwareConfig.ENABLED if use_hardware is None else use_hardware
    if not use_hardware:
        return LoggingPresenter(), None
    from stockscan.hardware.hardware_controller import HardwareController, HardwarePresenter
    hardware = HardwareController()
    return HardwarePresenter(hardware), hardware


class ScanStationSystem:
    def __init__(self, store=None, use_hardware=None, stream=None):
        """Initialize the scan station."""
        self.logger = logging.getLogger(__name__)
        self._setup_output_directories()

        self.store = store or create_store()
        self.presenter, self.hardware_controller = create_presenter(use_hardware)
        self.controller = ScanSessionController(self.store, presenter=self.presenter)
        self.stream = stream or BarcodeStream(CameraManager(), decode_frame)
        self.running = False

    def _setup_output_directories(self):
        """Create necessary output directories."""
        os.makedirs(PathConfig.OUTPUT_DIR, exist_ok=True)
        os.makedirs(PathConfig.LABEL_DIR, exist_ok=True)

    def _handle_shutdown(self, signum, frame):
        """Handle shutdown signals."""
        self.logger.info("Shutdown signal received")
        self.stop()
        sys.exit(0)

    def start(self):
        """Start the live camera stream."""
        try:
            self.running = True
            signal.signal(signal.SIGINT, self._handle_shutdown)
            signal.signal(signal.SIGTERM, self._handle_shutdown)

            self.controller.start_scanning(self.stream)
            self.logger.info("Scan station started - point a barcode at the camera")
        except Exception as e:
            self.logger.error(f"Error starting system: {e}")
            self.stop()
            raise

    def handle_command(self, line):
        """Apply one console command. Returns False when the station should stop."""
        line = line.strip()
        if not line:
            return True
        command, _, argument = line.partition(" ")
        command = command.lower()

        if command in ("exit", "quit"):
            return False
        if command in ("help", "?"):
            print(HELP_TEXT)
        elif command in ACTION_COMMANDS:
            self.controller.perform_action(ACTION_COMMANDS[command])
        elif command == "+":
            self.controller.increment_quantity()
        elif command == "-":
            self.controller.decrement_quantity()
        elif command == "q":
            self.controller.set_quantity_draft(argument)
            self.controller.commit_quantity()
        elif command == "n":
            self.controller.close_session()
        elif command == "img":
            self.controller.scan_image(argument.strip())
        elif command == "retry":
            self.controller.retry_camera()
        else:
            self.controller.submit_code(line)
        return True

    def run_console(self, lines=None):
        """Read commands until exit or end of input."""
        for line in lines if lines is not None else sys.stdin:
            if not self.handle_command(line):
                break

    def stop(self):
        """Stop the scan station."""
        if not self.running:
            return
        self.logger.info("Stopping system...")
        self.running = False
        try:
            self.controller.shutdown()
        finally:
            self.store.close()
            if self.hardware_controller:
                self.hardware_controller.cleanup()
        self.logger.info("System stopped")


def cmd_scan(args):
    system = None
    try:
        system = ScanStationSystem(use_hardware=args.hardware or None)
        system.start()
        print(HELP_TEXT)
        system.run_console()
    finally:
        if system:
            system.stop()
    return 0


def cmd_decode(args):
    try:
        code = decode_still_image(args.image)
    except DecodeNotFound as e:
        print(str(e), file=sys.stderr)
        return 1
    print(code)
    return 0


def cmd_label(args):
    try:
        label = render_barcode_image(args.code, symbology=args.symbology)
    except LabelRenderError as e:
        print(str(e), file=sys.stderr)
        return 1
    label.save(args.output)
    print(f"{label.code} rendered as {label.symbology} -> {args.output}")
    return 0


def cmd_seed(args):
    store = create_store(args.store)
    try:
        for product in DEMO_PRODUCTS:
            store.put_product(product)
            print(f"Added {product.code} {product.name}")
    finally:
        store.close()
    return 0


def cmd_stats(args):
    store = create_store(args.store)
    try:
        data = dashboard_data(store)
    finally:
        store.close()
    data["recentTransactions"] = [t.to_document() for t in data["recentTransactions"]]
    print(json.dumps(data, indent=2, default=str))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="stockscan", description="Barcode inventory scan station")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    scan = subparsers.add_parser("scan", help="Run the camera scan station (default)")
    scan.add_argument("--hardware", action="store_true", help="Drive the status LED and buzzer")
    scan.set_defaults(func=cmd_scan)

    decode = subparsers.add_parser("decode", help="Decode a barcode from an image file")
    decode.add_argument("image")
    decode.set_defaults(func=cmd_decode)

    label = subparsers.add_parser("label", help="Render a printable barcode label")
    label.add_argument("code")
    label.add_argument("output")
    label.add_argument("--symbology", choices=("ean13", "code128"))
    label.set_defaults(func=cmd_label)

    for name, func, text in (("seed", cmd_seed, "Load the demo products"),
                             ("stats", cmd_stats, "Print dashboard figures as JSON")):
        sub = subparsers.add_parser(name, help=text)
        sub.add_argument("--store", choices=("memory", "firestore"), default=None)
        sub.set_defaults(func=func)
    return parser


def main(argv=None):
    """Main entry point for the application."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else None)
    if args.command is None:
        args.func, args.hardware = cmd_scan, False

    try:
        return args.func(args)
    except Exception as e:
        logging.error(f"Critical error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
