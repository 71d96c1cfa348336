import logging
import sys
import os

from amzscraper.config import ScraperConfig


def setup_logging(log_file=None, log_level='INFO'):
    if log_file:
        log_dir = 'log'
        os.makedirs(log_dir, exist_ok=True)
        # If only a filename is given, place it in the log folder
        if not os.path.dirname(log_file):
            log_file = os.path.join(log_dir, log_file)
    destination = {'filename': log_file} if log_file else {'stream': sys.stdout}
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(message)s',
        **destination
    )
    if log_file:
        # Also log to stdout
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
        logging.getLogger().addHandler(handler)


def build_parser():
    import argparse
    parser = argparse.ArgumentParser(description="Amazon order and invoice downloader")
    parser.add_argument('--year', type=int, default=None, help='Order year to collect (default: AMZSC_INVOICE_YEAR or current year)')
    parser.add_argument('--download-dir', type=str, default=None)
    parser.add_argument('--user-data-dir', type=str, default=None, help='Persistent browser profile directory')
    parser.add_argument('--headless', action='store_true', default=None)
    parser.add_argument('--ids-only', action='store_true', help='Only collect order IDs, skip order details and invoices')
    parser.add_argument('--clear-session', action='store_true', help='Delete the browser profile before running (forces a new login)')
    parser.add_argument('--env-file', type=str, default=None)
    parser.add_argument('--log-file', type=str, default=None)
    parser.add_argument('--log-level', type=str, default='INFO')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file, args.log_level)
    logger = logging.getLogger("amzscraper")

    try:
        config = ScraperConfig.from_env(args.env_file).with_overrides(
            invoice_year=args.year,
            download_dir=args.download_dir,
            user_data_dir=args.user_data_dir,
            headless=args.headless,
        )
        config.log_summary()

        from amzscraper.browser_manager import BrowserManager
        from amzscraper.page_query import SeleniumPageQuery
        from amzscraper.pipeline import HarvestPipeline
        from amzscraper.session_manager import SessionManager

        if args.clear_session:
            SessionManager.clear_session(config.user_data_dir)

        with BrowserManager(config) as browser:
            page_query = SeleniumPageQuery(browser.driver)
            SessionManager(page_query, config.base_url).login()
            HarvestPipeline(config, page_query).run_year(config.invoice_year, ids_only=args.ids_only)
    except Exception as e:
        logger.exception("Fatal error in main")
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
